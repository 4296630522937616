import logging
from typing import Callable, Union

from tenacity import retry, stop_after_delay, retry_if_result, wait_fixed

from bigquery_job.ems_api_error import EmsApiError
from bigquery_job.ems_interceptor import EmsInterceptorChain, EmsCancelPathInterceptor
from bigquery_job.ems_job_state import EmsJobState
from bigquery_job.ems_listener_registry import EmsListenerRegistry
from bigquery_job.ems_request import EmsRequest
from bigquery_job.ems_timer import EmsTimer

logger = logging.getLogger(__name__)


class EmsJob:
    """Handle of a BigQuery job.

    Subscribing to `complete` starts polling the job metadata. Polling goes on while
    the job is pending and somebody listens, and ends with a `complete` event carrying
    the metadata or an `error` event. The first fetch runs on the timer, so listeners
    subscribed right after `complete` still receive its outcome.
    """

    COMPLETE_EVENT = "complete"
    ERROR_EVENT = "error"
    POLL_INTERVAL_MS = 500
    WAIT_TIMEOUT_SECONDS = 200

    def __init__(self, bigquery, job_id: str, timer: EmsTimer = None):
        self.__bigquery = bigquery
        self.__job_id = job_id
        self.__timer = timer if timer is not None else EmsTimer()
        self.__interceptors = EmsInterceptorChain()
        self.__interceptors.register(EmsCancelPathInterceptor())
        self.__listeners = EmsListenerRegistry(on_listener_added=self.__listener_added,
                                               on_listener_removed=self.__listener_removed)
        self.metadata = None
        self.complete_listeners = 0
        self.has_active_listeners = False

    @property
    def bigquery(self):
        return self.__bigquery

    @property
    def job_id(self) -> str:
        return self.__job_id

    @property
    def interceptors(self) -> EmsInterceptorChain:
        return self.__interceptors

    def on(self, event: str, listener: Callable) -> "EmsJob":
        self.__listeners.add(event, listener)
        return self

    def remove_listener(self, event: str, listener: Callable) -> "EmsJob":
        self.__listeners.remove(event, listener)
        return self

    def emit(self, event: str, *args) -> bool:
        return self.__listeners.emit(event, *args)

    def request(self, request: EmsRequest, callback: Callable) -> None:
        request = request._replace(uri=f"/jobs/{self.__job_id}{request.uri}")
        self.__bigquery.request(request, callback, self.__interceptors)

    def get_metadata(self, callback: Callable) -> None:
        def on_response(error, metadata, response):
            if error is None:
                self.metadata = metadata
            callback(error, metadata, response)

        self.request(EmsRequest("GET", ""), on_response)

    def cancel(self, callback: Callable = None) -> None:
        def on_response(error=None, api_response=None, *args):
            if callback is not None:
                callback(error, api_response)

        self.request(EmsRequest("POST", "/cancel"), on_response)

    def get_query_results(self, options: Union[dict, Callable] = None, callback: Callable = None):
        if callable(options):
            callback, options = options, None
        if options is None:
            options = {"job": self}
        return self.__bigquery.query(options, callback)

    def start_polling(self) -> None:
        if not self.has_active_listeners:
            return
        self.__timer.schedule(self.__poll, 0)

    def __poll(self) -> None:
        self.get_metadata(self.__on_metadata)

    def __on_metadata(self, error, metadata, response) -> None:
        if error is not None:
            logger.warning(f"Fetching metadata of job {self.__job_id} failed: {error}")
            self.emit(self.ERROR_EVENT, error)
            return

        status = self.__status_of(metadata)
        if "errors" in status:
            logger.warning(f"Job {self.__job_id} failed: {status['errors']}")
            self.emit(self.ERROR_EVENT, EmsApiError.from_status(status))
            return

        if status.get("state") != EmsJobState.DONE.value:
            logger.debug(f"Job {self.__job_id} is {status.get('state')}, polling again")
            self.__timer.schedule(self.start_polling, self.POLL_INTERVAL_MS)
            return

        logger.info(f"Job {self.__job_id} is done")
        self.emit(self.COMPLETE_EVENT, metadata)

    def wait_until_done(self, timeout_seconds: float = WAIT_TIMEOUT_SECONDS) -> dict:
        """Blocks until the job is done or reports errors and returns its metadata.

        Needs a transport which calls back before returning. Raises the transport error,
        an EmsApiError if the job failed, or tenacity's RetryError on timeout.
        """
        @retry(wait=wait_fixed(self.POLL_INTERVAL_MS / 1000),
               stop=(stop_after_delay(timeout_seconds)),
               retry=(retry_if_result(lambda result: not self.__is_terminal(result))))
        def __wait_for_job_done_helper():
            return self.__fetch_metadata()

        metadata = __wait_for_job_done_helper()
        status = self.__status_of(metadata)
        if "errors" in status:
            raise EmsApiError.from_status(status)
        return metadata

    def __fetch_metadata(self) -> dict:
        outcome = {}

        def on_metadata(error, metadata, response):
            outcome["error"] = error
            outcome["metadata"] = metadata

        self.get_metadata(on_metadata)
        if outcome.get("error") is not None:
            raise outcome["error"]
        return outcome.get("metadata") or {}

    @staticmethod
    def __status_of(metadata: Union[dict, None]) -> dict:
        return (metadata or {}).get("status") or {}

    def __is_terminal(self, metadata: dict) -> bool:
        status = self.__status_of(metadata)
        return "errors" in status or status.get("state") == EmsJobState.DONE.value

    def __listener_added(self, event: str, count: int) -> None:
        if event != self.COMPLETE_EVENT:
            return
        self.complete_listeners += 1
        if not self.has_active_listeners:
            self.has_active_listeners = True
            self.start_polling()

    def __listener_removed(self, event: str, count: int) -> None:
        if event != self.COMPLETE_EVENT:
            return
        self.complete_listeners = max(0, self.complete_listeners - 1)
        if self.complete_listeners == 0:
            self.has_active_listeners = False
