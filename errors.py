from typing import Optional


class ApiToCsvError(Exception):
    stage = "pipeline"

    def __init__(self, message: str, cause: Optional[BaseException] = None) -> None:
        super().__init__(message)
        self.message = message
        self.cause = cause

    def __str__(self) -> str:
        if self.cause is not None:
            return f"[{self.stage}] {self.message}: {self.cause}"
        return f"[{self.stage}] {self.message}"


class TransportError(ApiToCsvError):
    stage = "source"

    def __init__(
        self,
        message: str,
        cause: Optional[BaseException] = None,
        status: Optional[int] = None,
    ) -> None:
        super().__init__(message, cause)
        self.status = status


class MalformedDocument(ApiToCsvError):
    stage = "transform"


class SinkError(ApiToCsvError):
    stage = "sink"
