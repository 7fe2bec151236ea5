"""Timeouts, retries and fallbacks around swappable analysis services.

Model-backed classifiers and answer generators may be slow or flaky.
The wrappers here give any implementation a per-call timeout and a
bounded exponential-backoff retry on TransientServiceError, then degrade
to a safe default instead of failing the request.
"""

import logging
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeoutError
from typing import Callable, Optional, Sequence, Type, TypeVar

from tenacity import (
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from .exceptions import (
    AnswerGenerationTimeoutError,
    ClassificationTimeoutError,
    TransientServiceError,
)
from .interfaces.answer import IAnswerGenerator
from .interfaces.classifier import ClassificationResult, IRiskClassifier
from .models.conversation import Message
from .models.enums import RiskLevel
from .qa.answer_generator import UNABLE_TO_ANSWER


logger = logging.getLogger(__name__)

T = TypeVar("T")


CLASSIFICATION_UNAVAILABLE = ClassificationResult(
    level=RiskLevel.LOW,
    rationale=(
        "Risk classification was unavailable for this clause; it has been "
        "treated as low risk and should be reviewed manually."
    ),
)


class _ResilientCaller:
    """Runs a callable with a timeout and tenacity-driven retries."""

    def __init__(
        self,
        name: str,
        timeout: Optional[float],
        max_attempts: int,
        backoff_multiplier: float,
        backoff_max: float,
        timeout_error: Type[TransientServiceError],
        max_workers: int = 4,
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.name = name
        self.timeout = timeout
        self.max_attempts = max_attempts
        self.backoff_multiplier = backoff_multiplier
        self.backoff_max = backoff_max
        self._timeout_error = timeout_error
        self._executor = (
            ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix=f"{name}-call")
            if timeout is not None else None
        )

    def call(self, func: Callable[[], T]) -> T:
        """
        Invoke ``func`` with retries.

        Raises:
            TransientServiceError: When every attempt failed transiently.
            Exception: Any non-transient error, on the first occurrence.
        """
        retrying = Retrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_exponential(multiplier=self.backoff_multiplier, max=self.backoff_max),
            retry=retry_if_exception_type(TransientServiceError),
            before_sleep=self._log_retry,
            reraise=True,
        )
        return retrying(self._call_once, func)

    def _call_once(self, func: Callable[[], T]) -> T:
        if self._executor is None:
            return func()
        future = self._executor.submit(func)
        try:
            return future.result(timeout=self.timeout)
        except FutureTimeoutError:
            future.cancel()
            raise self._timeout_error(
                message=f"{self.name} did not finish within {self.timeout}s",
                details={"timeout": self.timeout},
            )

    def _log_retry(self, retry_state) -> None:
        logger.warning(
            f"{self.name} attempt {retry_state.attempt_number}/{self.max_attempts} "
            f"failed: {retry_state.outcome.exception()}; retrying"
        )

    def shutdown(self) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=False)


class ResilientRiskClassifier(IRiskClassifier):
    """
    IRiskClassifier decorator adding timeout, retry and LOW fallback.

    Never raises: exhausted retries and unexpected faults both degrade to
    a LOW result whose rationale says classification was unavailable.
    """

    def __init__(
        self,
        inner: IRiskClassifier,
        timeout: Optional[float] = 10.0,
        max_attempts: int = 3,
        backoff_multiplier: float = 0.5,
        backoff_max: float = 4.0,
        max_workers: int = 4,
    ):
        self.inner = inner
        self._caller = _ResilientCaller(
            name="risk_classification",
            timeout=timeout,
            max_attempts=max_attempts,
            backoff_multiplier=backoff_multiplier,
            backoff_max=backoff_max,
            timeout_error=ClassificationTimeoutError,
            max_workers=max_workers,
        )

    def classify(
        self,
        clause_text: str,
        category: Optional[str] = None,
    ) -> ClassificationResult:
        try:
            return self._caller.call(lambda: self.inner.classify(clause_text, category))
        except TransientServiceError as e:
            logger.warning(f"Risk classification unavailable, defaulting to LOW: {e.message}")
        except Exception:
            logger.exception("Risk classifier failed, defaulting to LOW")
        return CLASSIFICATION_UNAVAILABLE

    def shutdown(self) -> None:
        self._caller.shutdown()


class ResilientAnswerGenerator(IAnswerGenerator):
    """IAnswerGenerator decorator adding timeout, retry and a default answer."""

    def __init__(
        self,
        inner: IAnswerGenerator,
        timeout: Optional[float] = 30.0,
        max_attempts: int = 3,
        backoff_multiplier: float = 0.5,
        backoff_max: float = 4.0,
        default_answer: str = UNABLE_TO_ANSWER,
        max_workers: int = 4,
    ):
        self.inner = inner
        self.default_answer = default_answer
        self._caller = _ResilientCaller(
            name="answer_generation",
            timeout=timeout,
            max_attempts=max_attempts,
            backoff_multiplier=backoff_multiplier,
            backoff_max=backoff_max,
            timeout_error=AnswerGenerationTimeoutError,
            max_workers=max_workers,
        )

    def answer(
        self,
        document_text: str,
        category: Optional[str],
        history: Sequence[Message],
        question: str,
    ) -> str:
        try:
            answer = self._caller.call(
                lambda: self.inner.answer(document_text, category, history, question)
            )
        except TransientServiceError as e:
            logger.warning(f"Answer generation unavailable, using default answer: {e.message}")
            return self.default_answer
        except Exception:
            logger.exception("Answer generator failed, using default answer")
            return self.default_answer
        if not answer or not answer.strip():
            return self.default_answer
        return answer

    def shutdown(self) -> None:
        self._caller.shutdown()
