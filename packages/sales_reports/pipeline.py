"""Run orchestration: rows → line items → groups → reports → dispatch.

Phases:

1. Fetch every row of the period from the row source. Failure here is the
   only fatal error (:class:`~sales_reports.errors.RowSourceError`).
2. Normalize and accumulate all rows (single pass, single thread). Malformed
   rows are logged and skipped.
3. Finalize the groups, then render and dispatch each one through
   :func:`~sales_reports.pmap.p_map`. Each group is contained: a render error,
   a dispatch error or a timeout yields a ``failed`` outcome for that group
   only.
"""

from __future__ import annotations

import contextvars
from collections.abc import Sequence
from uuid import uuid4

from .collaborators import CustomerRepLookup, RowSource
from .dispatch import ReportDispatcher
from .errors import RowSourceError
from .grouping import GroupAccumulator
from .logging_setup import get_logger, run_context
from .models import (
    DispatchOutcome,
    DispatchStatus,
    LineItem,
    RunSummary,
    recipient_kind_for,
)
from .normalizer import NormalizationStats, RepFallbackPolicy, normalize_rows
from .periods import ReportingPeriod
from .pmap import p_map
from .render import DEFAULT_HEADER, build_report

_logger = get_logger("sales_reports.pipeline")


def _failed(group_key: str, items: Sequence[LineItem], reason: str) -> DispatchOutcome:
    return DispatchOutcome(
        group_key=group_key,
        status=DispatchStatus.FAILED,
        reason=reason,
        recipient_kind=recipient_kind_for(group_key),
        line_count=len(items),
    )


def _process_group(
    group: tuple[str, tuple[LineItem, ...]],
    *,
    dispatcher: ReportDispatcher,
    period: ReportingPeriod,
    header: Sequence[str],
) -> DispatchOutcome:
    group_key, items = group
    try:
        report = build_report(group_key, items, period=period, header=header)
    except Exception as exc:  # noqa: BLE001 - contained per group
        _logger.error("Render failed for group %s", group_key, exc_info=True)
        return _failed(group_key, items, f"render failed: {exc}")
    try:
        return dispatcher.dispatch(report)
    except Exception as exc:  # noqa: BLE001 - contained per group
        _logger.error("Dispatch raised for group %s", group_key, exc_info=True)
        return _failed(group_key, items, f"dispatch failed: {exc}")


def collect_groups(
    row_source: RowSource,
    period: ReportingPeriod,
    *,
    policy: RepFallbackPolicy = RepFallbackPolicy.NONE,
    rep_lookup: CustomerRepLookup | None = None,
    stats: NormalizationStats | None = None,
) -> GroupAccumulator:
    """Consume the whole row source and return the finalized accumulator."""

    acc = GroupAccumulator()
    try:
        rows = row_source.fetch_rows(period)
        acc.extend(normalize_rows(rows, policy=policy, rep_lookup=rep_lookup, stats=stats))
    except RowSourceError:
        raise
    except Exception as exc:
        raise RowSourceError(f"could not read transactions for {period.label}: {exc}") from exc
    acc.finalize()
    return acc


def run_pipeline(
    row_source: RowSource,
    dispatcher: ReportDispatcher,
    *,
    period: ReportingPeriod,
    policy: RepFallbackPolicy = RepFallbackPolicy.NONE,
    rep_lookup: CustomerRepLookup | None = None,
    header: Sequence[str] = DEFAULT_HEADER,
    concurrency: int = 1,
    dispatch_timeout: float | None = None,
    run_id: str | None = None,
) -> RunSummary:
    """Build and send one report per group for ``period``.

    Returns a :class:`RunSummary` whose outcomes follow group order (first
    appearance in the row stream). Raises :class:`RowSourceError` when the
    rows cannot be obtained. Log records of the run, including those from
    dispatch workers, carry the run id.
    """

    rid = run_id or uuid4().hex
    with run_context(rid):
        _logger.info("Sales report run %s started for %s", rid, period.label)

        stats = NormalizationStats()
        try:
            acc = collect_groups(
                row_source, period, policy=policy, rep_lookup=rep_lookup, stats=stats
            )
        except RowSourceError:
            _logger.error("Sales report run %s aborted: row source failed", rid, exc_info=True)
            raise
        groups = acc.finalize()
        _logger.info(
            "Run %s: %d rows read, %d skipped, %d groups",
            rid,
            stats.seen,
            stats.skipped,
            len(groups),
        )

        # Each worker call runs in its own copy of this context (run id included).
        parent_ctx = contextvars.copy_context()

        def _dispatch_in_context(group: tuple[str, tuple[LineItem, ...]]) -> DispatchOutcome:
            return parent_ctx.copy().run(
                _process_group, group, dispatcher=dispatcher, period=period, header=header
            )

        def _on_timeout(group: tuple[str, tuple[LineItem, ...]]) -> DispatchOutcome:
            key, items = group
            _logger.error("Dispatch for group %s timed out after %ss", key, dispatch_timeout)
            return _failed(key, items, f"timed out after {dispatch_timeout}s")

        outcomes = p_map(
            list(groups.items()),
            _dispatch_in_context,
            concurrency=concurrency,
            stop_on_error=False,
            timeout=dispatch_timeout,
            on_timeout=_on_timeout,
        )

        summary = RunSummary(
            period=period,
            run_id=rid,
            rows_seen=stats.seen,
            rows_skipped=stats.skipped,
            outcomes=tuple(outcomes),
        )
        _logger.info(
            "Sales report run %s completed: %d groups, %d delivered, %d skipped, %d failed",
            rid,
            len(summary.outcomes),
            summary.delivered,
            summary.skipped,
            summary.failed,
        )
        return summary


__all__ = ["collect_groups", "run_pipeline"]
