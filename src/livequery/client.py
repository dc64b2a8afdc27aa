"""
Live query client.

Entry point of the package: wraps a transport, hands out Model facades
and tracks whether the session is authenticated, which decides how live
queries replay after a reconnect.

Usage:
    client = LiveQueryClient(transport)
    await client.authorize(token)
    todos = client.model("todo")
"""

import logging
from typing import Any, Dict, Iterable, Optional

from .core.config import settings
from .model import Model
from .transport import Transport

logger = logging.getLogger(__name__)


class LiveQueryClient:
    """Client-side access to the models of one remote backend."""

    def __init__(self, transport: Transport, namespace: Optional[str] = None):
        """
        Args:
            transport: RPC transport connected to the backend.
            namespace: Prefix of remote method names. Defaults to
                ``settings.rpc_namespace``.
        """
        self.transport = transport
        self.namespace = namespace or settings.rpc_namespace
        self.user: Dict[str, Any] = self._anonymous_user()
        self.authenticated = False
        self._models: Dict[str, Model] = {}

    @staticmethod
    def _anonymous_user() -> Dict[str, Any]:
        return {"privilege_level": settings.default_privilege_level}

    def rpc_name(self, method: str) -> str:
        return f"{self.namespace}.{method}"

    def model(self, name: str) -> Model:
        """
        Return the model facade for ``name``, creating it on first use.

        A new model exposes its push handlers to the remote peer.
        """
        model = self._models.get(name)
        if model is None:
            model = Model(self, name)
            self._models[name] = model
            self.transport.expose_handlers({self.namespace: {name: model.push_handlers}})
            logger.debug(f"Loaded model '{name}'")
        return model

    def get_models(self, names: Iterable[str]) -> Dict[str, Model]:
        """Load several models, each name once."""
        return {name: self.model(name) for name in names}

    async def get_all_models(self) -> Dict[str, Model]:
        """Load every model the backend reports."""
        names = await self.transport.call(self.rpc_name("getModels"))
        return self.get_models(names)

    async def authorize(self, *args: Any) -> Any:
        """
        Authenticate the session.

        Live queries executed afterwards replay only after the transport
        reports a successful re-authentication.
        """
        user = await self.transport.call(self.rpc_name("authorize"), *args)
        self.user = user
        self.authenticated = True
        logger.info("Session authorized")
        return user

    def logout(self) -> None:
        """Forget the authenticated user. Later live queries replay on reconnect."""
        self.user = self._anonymous_user()
        self.authenticated = False
        logger.info("Session reset to anonymous")

    @property
    def models(self) -> Dict[str, Model]:
        return dict(self._models)


__all__ = [
    "LiveQueryClient",
]
