import threading
from typing import Callable


class EmsTimer:

    def schedule(self, callback: Callable, delay_ms: int) -> threading.Timer:
        timer = threading.Timer(delay_ms / 1000, callback)
        timer.daemon = True
        timer.start()
        return timer
