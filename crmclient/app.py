from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

from .config import CrmClientConfig, load_config
from .http_client import ApiClient
from .session import SessionStore
from .session_file import SessionFile


@dataclass
class App:
    config: CrmClientConfig
    client: ApiClient
    session: SessionStore


def build_app(
    config: CrmClientConfig | None = None,
    *,
    navigate: Callable[[str], None] | None = None,
) -> App:
    """Wire the transport and session together and restore any persisted session.

    The returned session is the only writer of the client's Authorization
    header, and the client's 401 hook points at ``session.expire``.
    """
    cfg = config or load_config()
    client = ApiClient(cfg.api_url, timeout_s=cfg.request_timeout_s)
    session = SessionStore(client, SessionFile(cfg.session_path), navigate=navigate)
    client.on_unauthorized = session.expire
    session.bootstrap()
    return App(config=cfg, client=client, session=session)
