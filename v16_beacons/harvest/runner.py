"""Request orchestration: cached feed read, pipeline, response payload."""

from __future__ import annotations

import logging
import time

from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential_jitter

from v16_beacons.common.errors import MalformedXmlError, PipelineError, UpstreamError
from v16_beacons.common.http import RetryConfig
from v16_beacons.common.logging import log_event
from v16_beacons.common.time_utils import local_timestamp_iso
from v16_beacons.harvest.feed_cache import SOURCE_CACHE, FeedCache
from v16_beacons.pipeline.reports import build_error_payload, build_success_payload
from v16_beacons.pipeline.run import PipelineResult, options_from_config, run_pipeline

STATUS_OK = 200
STATUS_SERVER_ERROR = 500

_default_logger = logging.getLogger(__name__)


def collect_feed(
    cache: FeedCache,
    cfg: dict,
    *,
    include_all: bool = False,
    logger: logging.Logger | None = None,
) -> PipelineResult:
    logger = logger or _default_logger
    options = options_from_config(cfg)
    body, source = cache.get_feed_with_source()
    try:
        return run_pipeline(body, include_all=include_all, **options)
    except MalformedXmlError as exc:
        if source != SOURCE_CACHE:
            raise
        log_event(
            logger,
            f"cached feed unparsable, refetching: {exc}",
            level=logging.WARNING,
            stage="cache",
            event="CACHE_CORRUPT",
            status="error",
            error_code=exc.error_code,
        )
    cache.invalidate()
    body = cache.refresh()
    return run_pipeline(body, include_all=include_all, **options)


def _collect_with_retries(
    cache: FeedCache,
    cfg: dict,
    *,
    include_all: bool,
    retry_config: RetryConfig,
    logger: logging.Logger,
) -> PipelineResult:
    def _log_retry(state) -> None:
        log_event(
            logger,
            f"upstream failure, retrying: {state.outcome.exception()}",
            level=logging.WARNING,
            stage="fetch",
            event="RETRY",
            status="retry",
            attempt=state.attempt_number,
        )

    @retry(
        stop=stop_after_attempt(retry_config.max_attempts),
        wait=wait_exponential_jitter(
            initial=retry_config.multiplier,
            max=retry_config.max_wait,
            jitter=1.0,
        ),
        retry=retry_if_exception_type(UpstreamError),
        before_sleep=_log_retry,
        reraise=True,
    )
    def _wrapped() -> PipelineResult:
        return collect_feed(cache, cfg, include_all=include_all, logger=logger)

    return _wrapped()


def serve_feed(
    cache: FeedCache,
    cfg: dict,
    *,
    include_all: bool = False,
    want_stats: bool = False,
    retry_config: RetryConfig | None = None,
    logger: logging.Logger | None = None,
) -> tuple[int, dict]:
    """Answer one map request. Failures become a single error payload with status 500."""
    logger = logger or _default_logger
    retry_config = retry_config or RetryConfig()
    started = time.monotonic()

    try:
        if retry_config.max_attempts > 1:
            result = _collect_with_retries(
                cache,
                cfg,
                include_all=include_all,
                retry_config=retry_config,
                logger=logger,
            )
        else:
            result = collect_feed(cache, cfg, include_all=include_all, logger=logger)
        payload = build_success_payload(
            result,
            source_label=cfg["feed"]["source_label"],
            want_stats=want_stats,
            generated_at=local_timestamp_iso(cfg["output"]["timezone"]),
            cache_age_seconds=cache.age_seconds(),
        )
    except PipelineError as exc:
        log_event(
            logger,
            str(exc),
            level=logging.ERROR,
            stage="request",
            event="REQUEST_FAIL",
            status="error",
            error_code=exc.error_code,
        )
        return STATUS_SERVER_ERROR, build_error_payload(str(exc))
    except Exception as exc:
        log_event(
            logger,
            f"unexpected failure: {exc!r}",
            level=logging.ERROR,
            stage="request",
            event="REQUEST_FAIL",
            status="error",
            error_code="UNEXPECTED_ERROR",
        )
        return STATUS_SERVER_ERROR, build_error_payload(f"Unexpected failure: {exc}")

    log_event(
        logger,
        "pipeline complete",
        stage="pipeline",
        event="PIPELINE_DONE",
        status="ok",
        duration_ms=int((time.monotonic() - started) * 1000),
        rows_in=result.stats.total_records,
        rows_out=len(result.records),
    )
    return STATUS_OK, payload
