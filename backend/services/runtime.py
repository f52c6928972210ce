"""Builds every pipeline component from ``Settings``.

One ``Runtime`` per application; nothing here is a module-level
singleton, so tests can build as many independent runtimes as they need.
"""

import logging
from collections.abc import Callable
from datetime import datetime

from config import Settings
from services.capabilities import Capabilities, probe_capabilities
from services.document_reader import DocumentReader
from services.match_scorer import MatchScorer, NeutralSalaryComparator
from services.pipeline.handlers import Notifier, PipelineHandlers, build_task_definitions
from services.queue.manager import QueueManager
from services.queue.store import TaskStore
from services.recommender import MatchService
from services.repository import PostingRepository, ProfileRepository, load_catalog
from services.result_cache import MemoryCacheBackend, ResultCache, utc_now
from services.skill_extractor import DictionarySkillExtractor

logger = logging.getLogger(__name__)


class Runtime:
    def __init__(
        self,
        settings: Settings,
        capabilities: Capabilities,
        queue: QueueManager,
        cache: ResultCache,
        reader: DocumentReader,
        profiles: ProfileRepository,
        postings: PostingRepository,
        matches: MatchService,
        handlers: PipelineHandlers,
    ) -> None:
        self.settings = settings
        self.capabilities = capabilities
        self.queue = queue
        self.cache = cache
        self.reader = reader
        self.profiles = profiles
        self.postings = postings
        self.matches = matches
        self.handlers = handlers

    def start(self) -> None:
        self.queue.start()

    async def stop(self) -> None:
        await self.queue.stop()


def build_runtime(
    settings: Settings,
    capabilities: Capabilities | None = None,
    store: TaskStore | None = None,
    postings: PostingRepository | None = None,
    notifier: Notifier | None = None,
    clock: Callable[[], datetime] = utc_now,
) -> Runtime:
    caps = capabilities or probe_capabilities(settings)

    if postings is None:
        postings = PostingRepository(load_catalog(settings.catalog_path) if settings.catalog_path else [])
    profiles = ProfileRepository()
    cache = ResultCache(MemoryCacheBackend(), clock=clock, available=caps.cache_available)
    scorer = MatchScorer(
        weights=settings.match_weights,
        salary_comparator=NeutralSalaryComparator(settings.salary_neutral_score),
    )
    matches = MatchService(
        profiles,
        postings,
        scorer,
        cache,
        posting_set_id=settings.posting_set_id,
        default_limit=settings.recommendation_limit,
        ttl_seconds=settings.recommendation_ttl_seconds,
        insights_ttl_seconds=settings.insights_ttl_seconds,
        clock=clock,
    )
    reader = DocumentReader()
    handlers = PipelineHandlers(
        settings,
        reader,
        profiles,
        matches,
        DictionarySkillExtractor.from_settings(settings),
        notifier=notifier,
    )

    queue = QueueManager(settings, caps, store=store, clock=clock)
    for definition in build_task_definitions(handlers, settings):
        queue.register(definition)
    queue.validate_graph()

    logger.info(
        "Runtime ready: mode=%s queues=%s postings=%d",
        caps.mode, ",".join(queue.queues), len(postings),
    )
    return Runtime(settings, caps, queue, cache, reader, profiles, postings, matches, handlers)
