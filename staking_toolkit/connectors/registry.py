"""Fixed, ordered catalog of wallet connectors."""

from typing import Dict, Iterable, Iterator, List, Optional, Tuple

from staking_toolkit.connectors.base import Connector
from staking_toolkit.connectors.injected import InjectedConnector
from staking_toolkit.connectors.models import ConnectorKind
from staking_toolkit.connectors.remote import (
    WalletConnectConnector,
    WalletLinkConnector,
)
from staking_toolkit.connectors.session_store import SessionStore

_KIND_ORDER = {kind: index for index, kind in enumerate(ConnectorKind)}


class ConnectorRegistry:
    """
    Connectors keyed by kind, iterated in ConnectorKind declaration order.

    The catalog is built once; each kind may appear at most once.
    """

    def __init__(self, connectors: Iterable[Connector]):
        by_kind: Dict[ConnectorKind, Connector] = {}
        for connector in connectors:
            if connector.kind in by_kind:
                raise ValueError(
                    f"Connector {connector.kind.value} registered twice"
                )
            by_kind[connector.kind] = connector

        self._connectors: Tuple[Tuple[ConnectorKind, Connector], ...] = tuple(
            sorted(by_kind.items(), key=lambda item: _KIND_ORDER[item[0]])
        )

    @classmethod
    def default(
        cls, session_store: Optional[SessionStore] = None
    ) -> "ConnectorRegistry":
        """Registry with every connector configured from the environment."""
        store = session_store or SessionStore()
        return cls(
            [
                InjectedConnector(),
                WalletConnectConnector(session_store=store),
                WalletLinkConnector(session_store=store),
            ]
        )

    def get(self, kind: ConnectorKind) -> Connector:
        for registered_kind, connector in self._connectors:
            if registered_kind == kind:
                return connector
        raise ValueError(f"Connector {kind.value} is not registered")

    def items(self) -> List[Tuple[ConnectorKind, Connector]]:
        return list(self._connectors)

    def kinds(self) -> List[ConnectorKind]:
        return [kind for kind, _ in self._connectors]

    def __iter__(self) -> Iterator[Connector]:
        return iter(connector for _, connector in self._connectors)

    def __len__(self) -> int:
        return len(self._connectors)

    def __contains__(self, kind: object) -> bool:
        return any(kind == registered for registered, _ in self._connectors)
