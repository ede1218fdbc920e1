import logging
import time
from typing import Any, Mapping, Type

from pydantic import BaseModel, ValidationError

from bandiera.errors import MalformedBody, classify
from bandiera.metrics import LATENCY, REQUESTS
from bandiera.models import QueryResult
from bandiera.params import sanitize_params
from bandiera.transport import Transport


class QueryEngine:
    """Runs one API call and turns every network condition into a value.

    Recoverable failures come back as ``default`` with ``fetched=False``.
    Anything the classifier does not recognise is logged and re-raised.
    """

    def __init__(self, transport: Transport, logger: logging.Logger):
        self.transport = transport
        self.logger = logger

    def execute(
        self,
        operation: str,
        path: str,
        params: Mapping[str, Any],
        timeout: float,
        default: Any,
        envelope: Type[BaseModel],
        context: str,
    ) -> QueryResult:
        prefix = f"[BandieraClient.{operation}] '{context}'"
        start = time.perf_counter()
        try:
            body = self.transport.get(path, sanitize_params(params), timeout)
            try:
                parsed = envelope.model_validate(body)
            except ValidationError as exc:
                raise MalformedBody(f"unexpected response from '{path}': {body!r}") from exc
        except Exception as exc:
            kind = classify(exc)
            if kind is None:
                self.logger.exception("%s - unexpected error", prefix)
                raise
            REQUESTS.labels(operation, kind.value).inc()
            self.logger.warning("%s - %s", prefix, exc)
            return QueryResult(value=default, fetched=False)
        finally:
            LATENCY.labels(operation).observe(time.perf_counter() - start)

        if parsed.warning:
            REQUESTS.labels(operation, "warning").inc()
            self.logger.warning("%s - %s", prefix, parsed.warning)
        else:
            REQUESTS.labels(operation, "ok").inc()
        return QueryResult(value=parsed.response, fetched=True, warning=parsed.warning)
