from __future__ import annotations

import logging
import threading
from typing import Optional

from models.mail_message import MessageSummary
from models.reply import CycleReport, ProcessingOutcome
from services.label_registry import LabelRegistry
from services.message_scanner import UnrepliedMessageScanner
from services.persistence_service import UnmarkedReplyStore
from services.reply_composer import ReplyComposer
from services.reply_dispatcher import MarkProcessedError, ReplyDispatcher

LOGGER = logging.getLogger(__name__)
HTTP_NOT_FOUND = 404
# Gmail answers 400 "Invalid label" when the cached label id was deleted.
LABEL_REJECTED_STATUSES = (400, HTTP_NOT_FOUND)


class AutoReplyCycle:
    """One end-to-end pass: ensure label, scan, classify, compose, dispatch, mark.

    Messages are handled sequentially and each one in isolation: a failure is
    recorded as an outcome and the pass moves on to the next candidate. Only a
    failure to resolve the processed label aborts the pass, since nothing could
    be marked afterwards.
    """

    def __init__(
        self,
        registry: LabelRegistry,
        scanner: UnrepliedMessageScanner,
        composer: ReplyComposer,
        dispatcher: ReplyDispatcher,
        unmarked_store: Optional[UnmarkedReplyStore] = None,
        stop_event: Optional[threading.Event] = None,
    ):
        self._registry = registry
        self._scanner = scanner
        self._composer = composer
        self._dispatcher = dispatcher
        self._unmarked_store = unmarked_store
        self._stop_event = stop_event or threading.Event()
        self._label_id: str | None = None

    @property
    def stop_event(self) -> threading.Event:
        return self._stop_event

    def run_cycle(self) -> CycleReport:
        report = CycleReport()
        try:
            self._label_id = self._registry.ensure_label()
        except Exception as exc:  # noqa: BLE001
            LOGGER.error("Aborting cycle, processed label unavailable: %s", exc)
            report.abort(str(exc))
            return report

        self._retry_unmarked()

        try:
            candidates = self._scanner.list_candidates()
        except Exception as exc:  # noqa: BLE001
            LOGGER.error("Aborting cycle, could not list unread messages: %s", exc)
            report.abort(str(exc))
            return report
        if not candidates:
            LOGGER.info("No unread messages to process")
            return report

        for candidate in candidates:
            if self._stop_event.is_set():
                remaining = len(candidates) - len(report.outcomes)
                LOGGER.info("Stop requested, leaving %s message(s) for the next cycle", remaining)
                break
            report.add(self._process(candidate))

        LOGGER.info(
            "Cycle finished: %s replied, %s skipped, %s failed",
            report.replied,
            report.skipped,
            report.failed,
        )
        return report

    def _process(self, candidate: MessageSummary) -> ProcessingOutcome:
        message_id = candidate.id
        try:
            if self._unmarked_store is not None and self._unmarked_store.contains(message_id):
                LOGGER.warning("Reply to %s already sent, still awaiting relabel", message_id)
                return ProcessingOutcome.failed(message_id, "reply already sent, awaiting relabel", reply_sent=True)
            classification = self._scanner.classify(message_id)
            if not classification.needs_reply:
                LOGGER.info("Skipping %s, already replied", message_id)
                return ProcessingOutcome.skipped(message_id)
            payload = self._composer.compose(classification.message)
            LOGGER.info("Sending auto-reply to %s for %s", payload.to, message_id)
            self._dispatcher.dispatch(payload)
        except Exception as exc:  # noqa: BLE001
            LOGGER.error("Error processing message %s: %s", message_id, exc)
            return ProcessingOutcome.failed(message_id, str(exc))

        try:
            self._mark(message_id)
        except Exception as exc:  # noqa: BLE001
            return self._sent_but_unmarked(message_id, str(exc))
        return ProcessingOutcome.replied(message_id)

    def _mark(self, message_id: str) -> None:
        """Mark a replied message, re-resolving the label once if Gmail rejects the cached id."""

        try:
            self._dispatcher.mark_processed(message_id, self._label_id)
        except MarkProcessedError as exc:
            if exc.status not in LABEL_REJECTED_STATUSES:
                raise
            LOGGER.warning("Label %s was rejected, resolving it again", self._label_id)
            self._registry.reset()
            fresh_id = self._registry.ensure_label()
            if fresh_id == self._label_id:
                raise
            self._label_id = fresh_id
            self._dispatcher.mark_processed(message_id, fresh_id)

    def _sent_but_unmarked(self, message_id: str, reason: str) -> ProcessingOutcome:
        LOGGER.error(
            "DUPLICATE RISK: reply to %s was sent but the message could not be labeled (%s); "
            "relabel it manually to avoid a second reply",
            message_id,
            reason,
        )
        if self._unmarked_store is not None:
            try:
                self._unmarked_store.record(message_id, self._label_id)
            except Exception as exc:  # noqa: BLE001
                LOGGER.error("Could not journal unmarked reply for %s: %s", message_id, exc)
        return ProcessingOutcome.failed(message_id, reason, reply_sent=True)

    def _retry_unmarked(self) -> None:
        if self._unmarked_store is None:
            return
        try:
            pending = self._unmarked_store.pending()
        except Exception as exc:  # noqa: BLE001
            LOGGER.error("Could not read the unmarked reply journal: %s", exc)
            return

        for entry in pending:
            try:
                self._mark(entry.message_id)
            except Exception as exc:  # noqa: BLE001
                if getattr(exc, "status", None) == HTTP_NOT_FOUND:
                    LOGGER.info("Message %s no longer exists, dropping it from the journal", entry.message_id)
                    self._forget(entry.message_id)
                else:
                    LOGGER.warning("Relabel of %s still failing: %s", entry.message_id, exc)
                continue
            LOGGER.info("Relabeled previously unmarked message %s", entry.message_id)
            self._forget(entry.message_id)

    def _forget(self, message_id: str) -> None:
        try:
            self._unmarked_store.clear(message_id)
        except Exception as exc:  # noqa: BLE001
            LOGGER.error("Could not clear journal entry for %s: %s", message_id, exc)
