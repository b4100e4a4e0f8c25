"""
Unit tests for the command line interface.
"""

import json
from unittest.mock import patch

import pytest

from staking_toolkit.cli import build_parser, main
from staking_toolkit.staking.batch_builder import BATCH_EXECUTE_SELECTOR

OWNER = "0x52f541764e6e90eebc5c21ff570de0e2d63766b6"
PROXY = "0xa26e80e7dea86279c6d778d702cc413e6cffa777"


class TestParser:
    def test_allocations_are_repeatable(self):
        args = build_parser().parse_args(
            [
                "stake",
                "--connector",
                "Injected",
                "--allocation",
                "1:10",
                "--allocation",
                "2:5",
                "--yes",
            ]
        )
        assert args.allocation == ["1:10", "2:5"]
        assert args.gas_source == "station"
        assert args.yes is True

    def test_unknown_connector_rejected(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["connect", "--connector", "Ledger"])


class TestEncodeCommand:
    def test_writes_calldata(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        with patch(
            "staking_toolkit.cli.registry.get_staking_proxy_address",
            return_value=PROXY,
        ):
            main(
                [
                    "encode",
                    "--owner",
                    OWNER,
                    "--allocation",
                    "1:10",
                    "--allocation",
                    "0x2:5",
                    "--output",
                    "batch.json",
                ]
            )

        output = json.loads((tmp_path / "output" / "batch.json").read_text())
        assert output["to"] == PROXY
        assert len(output["calls"]) == 3
        assert output["data"].startswith("0x" + BATCH_EXECUTE_SELECTOR.hex())

    def test_invalid_owner_exits(self):
        with pytest.raises(SystemExit) as exc_info:
            main(["encode", "--owner", "0x123", "--allocation", "1:10"])
        assert exc_info.value.code == 1

    def test_invalid_allocation_exits(self):
        with pytest.raises(SystemExit) as exc_info:
            main(["encode", "--owner", OWNER, "--allocation", "1:0"])
        assert exc_info.value.code == 1
