"""Load the WhatsApp session provider named in config.json."""

from __future__ import annotations

import importlib
from typing import Any, Optional

from core.ports import SessionProvider


def load_session_provider(target: str, options: Optional[dict] = None) -> SessionProvider:
    """Import "package.module:factory" and call the factory with `options`."""

    module_name, _, attribute = target.partition(":")
    if not module_name or not attribute:
        raise ValueError(f"whatsapp.provider must look like 'package.module:factory', got {target!r}")

    module = importlib.import_module(module_name)
    factory: Any = module
    for part in attribute.split("."):
        try:
            factory = getattr(factory, part)
        except AttributeError:
            raise ValueError(f"{module_name} has no attribute {attribute}") from None

    provider = factory(**(options or {}))
    if not callable(getattr(provider, "open", None)):
        raise TypeError(f"{target} did not return a session provider (missing open())")
    return provider
