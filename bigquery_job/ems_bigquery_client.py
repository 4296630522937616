from typing import Callable, Iterable, Union

from google.api_core.exceptions import GoogleAPIError
from google.cloud import bigquery
from google.cloud.bigquery import QueryJobConfig, QueryJob

from bigquery_job.ems_api_error import EmsApiError
from bigquery_job.ems_http_transport import EmsHttpTransport
from bigquery_job.ems_interceptor import EmsInterceptorChain
from bigquery_job.ems_job import EmsJob
from bigquery_job.ems_query_priority import EmsQueryPriority
from bigquery_job.ems_request import EmsRequest


class EmsBigqueryClient:
    BASE_PATH = "/bigquery/v2/projects/{}"

    def __init__(self, project_id: str, location: str = "EU", transport: EmsHttpTransport = None):
        self.__project_id = project_id
        self.__location = location
        self.__bigquery_client = bigquery.Client(project_id)
        self.__transport = transport if transport is not None else EmsHttpTransport()
        self.__interceptors = EmsInterceptorChain()

    @property
    def project_id(self) -> str:
        return self.__project_id

    @property
    def location(self) -> str:
        return self.__location

    @property
    def interceptors(self) -> EmsInterceptorChain:
        return self.__interceptors

    def job(self, job_id: str) -> EmsJob:
        return EmsJob(self, job_id)

    def request(self, request: EmsRequest, callback: Callable, interceptors: EmsInterceptorChain = None) -> None:
        request = request._replace(uri=self.BASE_PATH.format(self.__project_id) + request.uri)
        request = self.__interceptors.apply(request)
        if interceptors is not None:
            request = interceptors.apply(request)
        self.__transport.request(request, callback)

    def create_query_job(self, query: str, job_id_prefix: str = None,
                         priority: EmsQueryPriority = EmsQueryPriority.INTERACTIVE) -> EmsJob:
        return self.job(self.__execute_query_job(query=query, priority=priority, job_id_prefix=job_id_prefix).job_id)

    def run_sync_query(self, query: str) -> Iterable:
        try:
            for row in self.__execute_query_job(query=query, priority=EmsQueryPriority.INTERACTIVE).result():
                yield dict(list(row.items()))
        except GoogleAPIError as e:
            raise EmsApiError("Error caused while running query: {}!".format(e.args[0]))

    def query(self, options: dict, callback: Callable = None) -> Union[list, None]:
        """Runs `options["query"]` or fetches the results of `options["job"]`.

        With a callback, it is called with `(error, rows)` and API errors are not raised.
        """
        try:
            rows = [dict(list(row.items())) for row in self.__fetch_results(options)]
        except GoogleAPIError as e:
            error = EmsApiError("Error caused while running query: {}!".format(e.args[0]))
            if callback is None:
                raise error
            callback(error, None)
            return None

        if callback is not None:
            callback(None, rows)
        return rows

    def __fetch_results(self, options: dict) -> Iterable:
        max_results = options.get("max_results")
        if "job" in options:
            query_job = self.__bigquery_client.get_job(options["job"].job_id, location=self.__location)
            return query_job.result(max_results=max_results)
        if "query" in options:
            query_job = self.__execute_query_job(query=options["query"], priority=EmsQueryPriority.INTERACTIVE)
            return query_job.result(max_results=max_results)
        raise ValueError("Query options should contain either a job or a query!")

    def __execute_query_job(self, query: str, priority: EmsQueryPriority, job_id_prefix=None) -> QueryJob:
        job_config = QueryJobConfig()
        job_config.priority = priority.value
        return self.__bigquery_client.query(query=query,
                                            job_config=job_config,
                                            job_id_prefix=job_id_prefix,
                                            location=self.__location)
