import logging
import time
from typing import Callable, Optional

from plancache.config import CACHE_CONFIG, MODEL_CONFIG
from plancache.schemas.generation import AIGenerationMetadata, AIGenerationResult
from plancache.schemas.planning import UserPlanningContext
from plancache.schemas.week_plan import WeekPlan
from plancache.services.llm_service import MODEL_NAME, ModelCallError, ModelErrorKind
from plancache.services.week_generator import generate_week_in_chunks

logger = logging.getLogger(__name__)


class AIRateLimitError(Exception):
    def __init__(self, message: str = "AI API rate limit exceeded"):
        super().__init__(message)


class AITimeoutError(Exception):
    def __init__(self, message: str = "AI API request timed out"):
        super().__init__(message)


class AIGenerationError(Exception):
    def __init__(self, message: str, original_error: Optional[BaseException] = None):
        super().__init__(message)
        self.original_error = original_error


class AIBudgetExceededError(Exception):
    """Spend gates are closed and there is no cached plan to fall back to."""

    def __init__(self, message: str = "AI budget exhausted and no cached plan available"):
        super().__init__(message)


def get_estimated_cost(total_weeks: int) -> float:
    return total_weeks * CACHE_CONFIG["COST_PER_WEEK_USD"]


class AIGenerator:
    """
    Wraps the chunked week generator with timing, cost estimation,
    error classification and retry with exponential backoff.
    """

    def __init__(
        self,
        week_generator: Callable[[UserPlanningContext, int], WeekPlan] = generate_week_in_chunks,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic
    ):
        self.week_generator = week_generator
        self.sleep = sleep
        self.clock = clock

    def generate_with_ai(self, context: UserPlanningContext, week_number: int = 1) -> AIGenerationResult:
        start = self.clock()
        logger.info(f"[AIGenerator] Generating week {week_number} with {MODEL_NAME}")

        try:
            plan = self.week_generator(context, week_number)
        except Exception as e:
            duration_ms = int((self.clock() - start) * 1000)
            raise self._classify(e, duration_ms) from e

        duration_ms = int((self.clock() - start) * 1000)

        # Token usage is estimated, not measured
        tokens_used = MODEL_CONFIG["ESTIMATED_TOKENS_PER_CHUNK"] * MODEL_CONFIG["CHUNKS_PER_WEEK"]
        cost_usd = (tokens_used / 1000) * MODEL_CONFIG["COST_PER_1K_TOKENS"]

        logger.info(f"[AIGenerator] Week {week_number} generated in {duration_ms}ms, estimated cost ${cost_usd:.4f}")

        return AIGenerationResult(
            plan=plan,
            metadata=AIGenerationMetadata(
                tokens_used=tokens_used,
                cost_usd=cost_usd,
                duration_ms=duration_ms,
                model=MODEL_NAME,
                chunked=True,
            ),
        )

    def _classify(self, error: Exception, duration_ms: int) -> Exception:
        kind = error.kind if isinstance(error, ModelCallError) else None

        if kind == ModelErrorKind.RATE_LIMIT:
            return AIRateLimitError(str(error))
        if kind == ModelErrorKind.QUOTA:
            return AIRateLimitError("API quota exceeded")
        if (
            kind == ModelErrorKind.TIMEOUT
            or isinstance(error, TimeoutError)
            or duration_ms > MODEL_CONFIG["TIMEOUT_MS"]
        ):
            return AITimeoutError(str(error))
        return AIGenerationError(f"Failed to generate plan with AI: {error}", error)

    def generate_with_retry(
        self,
        context: UserPlanningContext,
        week_number: int = 1,
        max_retries: int = MODEL_CONFIG["RETRY_ATTEMPTS"]
    ) -> AIGenerationResult:
        last_error: Optional[Exception] = None

        for attempt in range(1, max_retries + 1):
            try:
                return self.generate_with_ai(context, week_number)
            except AIRateLimitError:
                # Waiting does not help and burns the daily quota
                raise
            except (AITimeoutError, AIGenerationError) as e:
                last_error = e
                logger.warning(f"[AIGenerator] Attempt {attempt}/{max_retries} failed: {e}")

                if attempt < max_retries:
                    delay_ms = MODEL_CONFIG["RETRY_DELAY_MS"] * (2 ** (attempt - 1))
                    logger.info(f"[AIGenerator] Waiting {delay_ms}ms before retrying")
                    self.sleep(delay_ms / 1000)

        raise last_error or AIGenerationError("All retry attempts failed")

    get_estimated_cost = staticmethod(get_estimated_cost)
