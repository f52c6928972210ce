"""Task handlers and the task-type graph.

    document-processing ──(delay, priority 1)──▶ match-generation ──(notify)──▶ notification
                        └──────────────────(notify)──────────────────────▶ notification
    analytics
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any

from models.payloads import (
    AnalyticsPayload,
    DocumentProcessingPayload,
    MatchGenerationPayload,
    NotificationPayload,
)
from services.document_reader import DocumentReader
from services.intake import build_profile
from services.queue.tasks import Continuation, TaskContext, TaskDefinition
from services.recommender import MatchService
from services.repository import ProfileRepository
from services.result_cache import utc_now
from services.skill_extractor import SkillExtractor

logger = logging.getLogger(__name__)

DOCUMENT_PROCESSING = "document-processing"
MATCH_GENERATION = "match-generation"
NOTIFICATION = "notification"
ANALYTICS = "analytics"

DOCUMENT_PROCESSED = "document-processed"
RECOMMENDATIONS_READY = "recommendations-ready"


class Notifier(ABC):
    """Delivery channel for user-facing notifications."""

    @abstractmethod
    async def send(self, subject_id: str, kind: str, data: dict[str, Any]) -> None: ...


class LoggingNotifier(Notifier):
    async def send(self, subject_id: str, kind: str, data: dict[str, Any]) -> None:
        logger.info("Notification %s for %s: %s", kind, subject_id, data)


class PipelineHandlers:
    def __init__(
        self,
        settings,
        reader: DocumentReader,
        profiles: ProfileRepository,
        matches: MatchService,
        skill_extractor: SkillExtractor,
        notifier: Notifier | None = None,
    ) -> None:
        self.settings = settings
        self.reader = reader
        self.profiles = profiles
        self.matches = matches
        self.skill_extractor = skill_extractor
        self.notifier = notifier or LoggingNotifier()

    async def process_document(
        self, payload: DocumentProcessingPayload, context: TaskContext
    ) -> dict[str, Any]:
        logger.info("Processing document for %s (task %s)", payload.subject_id, context.task_id)
        text = await asyncio.to_thread(self.reader.read, payload.source_ref, payload.file_type)
        context.report_progress(30)

        profile = build_profile(
            text,
            profile_id=payload.profile_id,
            subject_id=payload.subject_id,
            location=payload.location,
            skill_extractor=self.skill_extractor,
            header_max_words=self.settings.section_header_max_words,
            high_confidence_threshold=self.settings.high_confidence_threshold,
            now=utc_now(),
        )
        context.report_progress(80)

        self.profiles.upsert(profile)
        # uploads are only needed until the profile is stored; retries still find them
        if self.reader.store.delete(payload.source_ref):
            logger.debug("Released uploaded document %s", payload.source_ref)
        return {
            "profile_id": profile.id,
            "skills_count": len(profile.skills),
            "experience_count": len(profile.experience),
            "education_count": len(profile.education),
            "overall_score": profile.quality_score.overall,
        }

    async def generate_matches(
        self, payload: MatchGenerationPayload, context: TaskContext
    ) -> dict[str, Any]:
        response = self.matches.generate_matches(payload.profile_id, payload.filters)
        top = response.matches[0].total_score if response.matches else 0.0
        return {
            "profile_id": payload.profile_id,
            "recommendations_count": len(response.matches),
            "top_match_score": top,
        }

    async def send_notification(
        self, payload: NotificationPayload, context: TaskContext
    ) -> dict[str, Any]:
        await self.notifier.send(payload.subject_id, payload.kind, payload.data)
        return {"subject_id": payload.subject_id, "kind": payload.kind, "sent": True}

    async def analyze_market(
        self, payload: AnalyticsPayload, context: TaskContext
    ) -> dict[str, Any]:
        insights = self.matches.market_insights(payload.skills, payload.location)
        return insights.model_dump(mode="json")


def _match_generation_payload(
    payload: DocumentProcessingPayload, result: dict[str, Any]
) -> dict[str, Any]:
    return {
        "subject_id": payload.subject_id,
        "profile_id": result["profile_id"],
        "notify": payload.notify,
    }


def _processed_notification_payload(
    payload: DocumentProcessingPayload, result: dict[str, Any]
) -> dict[str, Any] | None:
    if not payload.notify:
        return None
    return {
        "subject_id": payload.subject_id,
        "kind": DOCUMENT_PROCESSED,
        "data": {
            "profile_id": result["profile_id"],
            "overall_score": result["overall_score"],
        },
    }


def _notification_payload(
    payload: MatchGenerationPayload, result: dict[str, Any]
) -> dict[str, Any] | None:
    if not payload.notify:
        return None
    return {
        "subject_id": payload.subject_id,
        "kind": RECOMMENDATIONS_READY,
        "data": result,
    }


def build_task_definitions(handlers: PipelineHandlers, settings) -> list[TaskDefinition]:
    return [
        TaskDefinition(
            queue=DOCUMENT_PROCESSING,
            handler=handlers.process_document,
            payload_model=DocumentProcessingPayload,
            continuations=(
                Continuation(
                    target=MATCH_GENERATION,
                    build_payload=_match_generation_payload,
                    delay_ms=settings.document_processing_delay_ms,
                    priority=1,
                ),
                Continuation(target=NOTIFICATION, build_payload=_processed_notification_payload),
            ),
        ),
        TaskDefinition(
            queue=MATCH_GENERATION,
            handler=handlers.generate_matches,
            payload_model=MatchGenerationPayload,
            continuations=(
                Continuation(target=NOTIFICATION, build_payload=_notification_payload),
            ),
        ),
        TaskDefinition(
            queue=NOTIFICATION,
            handler=handlers.send_notification,
            payload_model=NotificationPayload,
        ),
        TaskDefinition(
            queue=ANALYTICS,
            handler=handlers.analyze_market,
            payload_model=AnalyticsPayload,
        ),
    ]
