from enum import Enum


class EmsQueryPriority(Enum):
    INTERACTIVE = "INTERACTIVE"
    BATCH = "BATCH"
