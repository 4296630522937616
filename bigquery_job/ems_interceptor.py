import re
from abc import ABC, abstractmethod
from typing import Iterator, List

from bigquery_job.ems_request import EmsRequest


class EmsRequestInterceptor(ABC):
    @abstractmethod
    def request(self, request: EmsRequest) -> EmsRequest:
        pass


class EmsInterceptorChain:
    """Ordered interceptors applied to every outgoing request before it reaches the transport."""

    def __init__(self):
        self.__interceptors = []  # type: List[EmsRequestInterceptor]

    def register(self, interceptor: EmsRequestInterceptor) -> None:
        self.__interceptors.append(interceptor)

    def apply(self, request: EmsRequest) -> EmsRequest:
        for interceptor in self.__interceptors:
            request = interceptor.request(request)
        return request

    def __iter__(self) -> Iterator[EmsRequestInterceptor]:
        return iter(self.__interceptors)

    def __len__(self) -> int:
        return len(self.__interceptors)


class EmsCancelPathInterceptor(EmsRequestInterceptor):
    """Job cancellation is served under `project/` instead of `projects/`."""

    CANCEL_PATH = re.compile(r"^(?P<version>/bigquery/v\d+/)projects(?P<rest>/[^/]+/jobs/[^/]+/cancel)$")

    def request(self, request: EmsRequest) -> EmsRequest:
        match = self.CANCEL_PATH.match(request.uri)
        if match is None:
            return request
        return request._replace(uri=f"{match.group('version')}project{match.group('rest')}")
