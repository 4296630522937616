import logging
from collections import defaultdict
from typing import Callable, Dict, List

logger = logging.getLogger(__name__)

ERROR_EVENT = "error"


class EmsListenerRegistry:
    """Observer registry keyed by event name.

    `on_listener_added` and `on_listener_removed` are called with the event name and the
    listener count after the change. A listener is registered before its hook runs, so
    an emission triggered from the hook reaches it.
    """

    def __init__(self,
                 on_listener_added: Callable[[str, int], None] = None,
                 on_listener_removed: Callable[[str, int], None] = None):
        self.__listeners = defaultdict(list)  # type: Dict[str, List[Callable]]
        self.__on_listener_added = on_listener_added
        self.__on_listener_removed = on_listener_removed

    def add(self, event: str, listener: Callable) -> None:
        self.__listeners[event].append(listener)
        if self.__on_listener_added is not None:
            self.__on_listener_added(event, self.count(event))

    def remove(self, event: str, listener: Callable) -> None:
        listeners = self.__listeners.get(event, [])
        if listener not in listeners:
            return
        listeners.remove(listener)
        if self.__on_listener_removed is not None:
            self.__on_listener_removed(event, self.count(event))

    def count(self, event: str) -> int:
        return len(self.__listeners.get(event, []))

    def emit(self, event: str, *args) -> bool:
        listeners = list(self.__listeners.get(event, []))
        if not listeners:
            if event == ERROR_EVENT:
                logger.error(f"Unhandled error event: {args[0] if args else None!r}")
            return False
        for listener in listeners:
            listener(*args)
        return True
