"""Hook dispatching for command and package events."""

from __future__ import annotations

import importlib
import logging
import os
import re
import subprocess
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from common.logging_utils import Timer, extra_context, is_debug_enabled
from constants import ScriptEvents

logger = logging.getLogger(__name__)

# "package.module:function" scripts are imported and called with the event
_CALLABLE_RE = re.compile(r"^[A-Za-z_][\w.]*:[A-Za-z_]\w*$")


class ScriptExecutionError(RuntimeError):
    """A shell script listener exited with a non-zero status."""

    def __init__(self, command: str, returncode: int):
        self.command = command
        self.returncode = returncode
        super().__init__(f'Script "{command}" returned with error code {returncode}')


@dataclass
class Event:
    """What listeners receive."""

    name: str
    dev_mode: bool = True
    operation: Any = None
    context: Dict[str, Any] = field(default_factory=dict)


Listener = Callable[[Event], Any]


class EventDispatcher:
    """Calls the listeners registered for an event, in registration order.

    Listeners are Python callables added with ``add_listener`` and the
    commands from the root package's ``scripts`` table. Any exception from a
    listener propagates to the caller.
    """

    def __init__(self, root_package=None, process_timeout: Optional[int] = 300, cwd: Optional[str] = None):
        self._listeners: Dict[str, List[Listener]] = {}
        self.scripts: Dict[str, List[str]] = dict(getattr(root_package, "scripts", {}) or {})
        self.process_timeout = process_timeout
        self.cwd = cwd

    def add_listener(self, event_name: str, listener: Listener) -> None:
        self._listeners.setdefault(_event_value(event_name), []).append(listener)

    def dispatch(self, event_name, dev_mode: bool = True, operation: Any = None, **context: Any) -> None:
        name = _event_value(event_name)
        event = Event(name, dev_mode, operation, dict(context))
        listeners = list(self._listeners.get(name, []))
        commands = self.scripts.get(name, [])
        if not listeners and not commands:
            return

        with Timer() as timer:
            for listener in listeners:
                listener(event)
            for command in commands:
                self._run_script(command, event)

        if is_debug_enabled(logger):
            logger.debug(
                "Dispatched event",
                extra=extra_context(
                    event="hook_dispatched",
                    component="events",
                    action=name,
                    count=len(listeners) + len(commands),
                    duration_ms=timer.duration_ms(),
                )
            )

    def dispatch_command_event(self, event_name, dev_mode: bool) -> None:
        self.dispatch(event_name, dev_mode=dev_mode)

    def dispatch_package_event(self, event_name, dev_mode: bool, operation) -> None:
        self.dispatch(event_name, dev_mode=dev_mode, operation=operation)

    def _run_script(self, command: str, event: Event) -> None:
        if _CALLABLE_RE.match(command):
            module_name, func_name = command.split(":", 1)
            func = getattr(importlib.import_module(module_name), func_name)
            logger.debug("Calling %s for %s", command, event.name)
            func(event)
            return

        logger.info("> %s", command)
        env = dict(os.environ)
        env["DEPSYNC_EVENT"] = event.name
        env["DEPSYNC_DEV_MODE"] = "1" if event.dev_mode else "0"
        completed = subprocess.run(  # pylint: disable=subprocess-run-check
            command, shell=True, cwd=self.cwd, env=env, timeout=self.process_timeout or None,
        )
        if completed.returncode != 0:
            raise ScriptExecutionError(command, completed.returncode)


def _event_value(event_name) -> str:
    if isinstance(event_name, ScriptEvents):
        return event_name.value
    return str(event_name)


def package_event(job_type: str, stage: str) -> Optional[ScriptEvents]:
    """Return the pre/post package event for a job type, if one exists."""
    try:
        return ScriptEvents(f"{stage}-package-{job_type}")
    except ValueError:
        return None
