"""Store configuration for pathstate."""

from __future__ import annotations

import dataclasses
import os
from typing import Any


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


@dataclasses.dataclass(frozen=True)
class StoreConfig:
    """Store configuration.

    Parameters
    ----------
    trace_dispatch : bool
        Emit a DEBUG log line for every notification dispatch
        (path, value and previous value).  Off by default because
        dispatch is the hot path.
    log_max_string : int
        Strings longer than this are truncated in DEBUG logs.
    log_max_items : int
        Containers with more entries than this are summarised in
        DEBUG logs instead of being rendered in full.
    clone_initial : bool
        Structurally clone the initial state at construction so the
        caller's structure is never aliased by the store.  Disable only
        when the caller hands over ownership of a freshly built tree.
    """

    trace_dispatch: bool = False
    log_max_string: int = 200
    log_max_items: int = 20
    clone_initial: bool = True

    @classmethod
    def from_env(cls, **overrides: Any) -> StoreConfig:
        """Create configuration from environment variables.

        Reads optional ``PATHSTATE_*`` variables.  Explicit keyword
        arguments override environment values.

        Parameters
        ----------
        **overrides
            Explicit field values that take precedence over env vars.

        Returns
        -------
        StoreConfig
            Populated configuration.
        """
        env = os.environ
        config_kwargs: dict[str, Any] = {}

        if "trace_dispatch" not in overrides:
            config_kwargs["trace_dispatch"] = _env_bool(env.get("PATHSTATE_TRACE_DISPATCH"), False)

        if "clone_initial" not in overrides:
            config_kwargs["clone_initial"] = _env_bool(env.get("PATHSTATE_CLONE_INITIAL"), True)

        max_string_env = env.get("PATHSTATE_LOG_MAX_STRING")
        if max_string_env is not None and "log_max_string" not in overrides:
            config_kwargs["log_max_string"] = int(max_string_env)

        max_items_env = env.get("PATHSTATE_LOG_MAX_ITEMS")
        if max_items_env is not None and "log_max_items" not in overrides:
            config_kwargs["log_max_items"] = int(max_items_env)

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
