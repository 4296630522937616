from typing import NamedTuple, Union


class EmsRequest(NamedTuple):
    method: str
    uri: str
    body: Union[dict, None] = None
    params: Union[dict, None] = None
