import logging
from typing import Callable

import google.auth
import requests
from google.api_core.exceptions import from_http_response
from google.auth.exceptions import GoogleAuthError
from google.auth.transport.requests import AuthorizedSession

from bigquery_job.ems_request import EmsRequest

logger = logging.getLogger(__name__)


class EmsHttpTransport:
    API_ROOT = "https://bigquery.googleapis.com"
    SCOPES = ["https://www.googleapis.com/auth/bigquery"]

    def __init__(self, credentials=None, api_root: str = API_ROOT):
        if credentials is None:
            credentials, _ = google.auth.default(scopes=self.SCOPES)
        self.__session = AuthorizedSession(credentials)
        self.__api_root = api_root

    def request(self, request: EmsRequest, callback: Callable) -> None:
        """Sends the request and calls back with `(error, body, response)`.

        Connection, credential refresh and body decoding failures are passed to the callback.
        """
        url = self.__api_root + request.uri
        logger.debug(f"{request.method} {url}")
        try:
            response = self.__session.request(request.method, url, params=request.params, json=request.body)
        except (requests.RequestException, GoogleAuthError) as e:
            logger.warning(f"{request.method} {url} failed: {e}")
            callback(e, None, None)
            return

        if not response.ok:
            callback(from_http_response(response), None, response)
            return

        try:
            body = response.json() if response.content else {}
        except ValueError as e:
            logger.warning(f"{request.method} {url} returned an undecodable body: {e}")
            callback(e, None, response)
            return
        callback(None, body, response)
