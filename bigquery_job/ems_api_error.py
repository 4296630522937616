from typing import Union


class EmsApiError(Exception):
    def __init__(self, message: str, errors: Union[list, None] = None, error_result: Union[dict, None] = None):
        super(EmsApiError, self).__init__(message)
        self.__errors = errors or []
        self.__error_result = error_result

    @property
    def errors(self) -> list:
        return self.__errors

    @property
    def error_result(self) -> Union[dict, None]:
        return self.__error_result

    @classmethod
    def from_status(cls, status: dict) -> "EmsApiError":
        """Builds the error of a job which reported a failure in its status payload."""
        errors = status.get("errors") or []
        if not isinstance(errors, list):
            errors = [errors]
        error_result = status.get("errorResult")

        message = (error_result or {}).get("message")
        if not message:
            message = "; ".join(cls.__message_of(error) for error in errors) or "Job failed"
        return cls(message, errors, error_result)

    @staticmethod
    def __message_of(error) -> str:
        if isinstance(error, dict):
            return error.get("message", str(error))
        return str(error)
