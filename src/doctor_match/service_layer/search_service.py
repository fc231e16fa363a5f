"""Search service orchestration layer.

Combines the shared n-gram index, relevance scoring and the search result
cache behind the free-text search, suggestion and similar-doctor use cases.
"""

import logging

from doctor_match.config import Settings
from doctor_match.domain.search import DoctorSearchResult, NgramStatistics, SearchFilters, SimilarDoctor
from doctor_match.observability.metrics import track_operation
from doctor_match.observability.tracing import create_span
from doctor_match.search.ngrams import generate_gram_lists, generate_ngrams, normalize_text
from doctor_match.search.scoring import passes_filters, score_candidate, search_match_reasons
from doctor_match.search.similarity import dice_similarity
from doctor_match.search.stats import compute_ngram_statistics
from doctor_match.service_layer.index_service import DoctorIndexService
from doctor_match.services.ttl_cache import TTLCache, make_cache_key


logger = logging.getLogger(__name__)

SUGGESTION_GRAM_SIZE = 2
SIMILARITY_GRAM_SIZE = 3
MIN_SUGGESTION_LENGTH = 3


class DoctorSearchService:
    """High-level doctor search orchestration service.

    Search results are cached for ``settings.search_cache_ttl_seconds`` under
    the query, the filters and the limit; suggestions and similar doctors are
    always computed fresh.
    """

    def __init__(
        self,
        index_service: DoctorIndexService,
        cache: TTLCache[list[DoctorSearchResult]],
        settings: Settings,
    ):
        """Initialize search service with dependencies.

        Args:
            index_service: Owner of the shared doctor index
            cache: Result cache for ``search_doctors``
            settings: Limits and thresholds
        """
        self.index_service = index_service
        self.cache = cache
        self.settings = settings

    async def search_doctors(
        self,
        query: str,
        filters: SearchFilters | None = None,
        limit: int | None = None,
    ) -> list[DoctorSearchResult]:
        """Fuzzy free-text search over the available doctors.

        Args:
            query: Free text; typos and partial words are tolerated
            filters: Optional post-scoring constraints
            limit: Maximum number of results, defaults to the configured limit

        Returns:
            Results ordered by descending similarity; roster order breaks ties
        """
        filters = filters or SearchFilters()
        limit = self.settings.default_search_limit if limit is None else limit

        with (
            create_span("doctor_match.search_doctors", attributes={"query.length": len(query), "limit": limit}),
            track_operation("search_doctors"),
        ):
            cache_key = make_cache_key("search", query, filters, limit)
            cached = self.cache.get(cache_key)
            if cached is not None:
                logger.debug("Search cache hit for %r", query)
                return cached

            try:
                index = await self.index_service.ensure_built()
                normalized_query = normalize_text(query)
                query_grams = generate_gram_lists(query, index.gram_sizes)

                scored = [
                    score_candidate(entry, query_grams, normalized_query)
                    for entry in index.find_candidates(query_grams)
                ]
                hits = [candidate for candidate in scored if passes_filters(candidate.doctor, filters)]
                hits.sort(key=lambda candidate: candidate.score, reverse=True)

                results = [
                    DoctorSearchResult(
                        doctor=candidate.doctor,
                        similarity_score=candidate.score,
                        match_reasons=search_match_reasons(candidate, query),
                        ngram_matches=candidate.ngram_matches,
                    )
                    for candidate in hits[:limit]
                ]
            except Exception:
                logger.error("Error in search_doctors", exc_info=True)
                raise

            logger.debug("Search for %r: %d candidates, %d results", query, len(scored), len(results))
            self.cache.set(cache_key, results)
            return results

    async def get_search_suggestions(self, partial_query: str, limit: int | None = None) -> list[str]:
        """Autocomplete words from indexed profiles that contain ``partial_query``.

        Candidates come from the bigram postings of the partial query. Words
        longer than two characters that contain the lower-cased query are
        returned with their first letter capitalized, de-duplicated in the
        order they were found.
        """
        limit = self.settings.default_suggestion_limit if limit is None else limit

        with (
            create_span("doctor_match.get_search_suggestions", attributes={"limit": limit}),
            track_operation("get_search_suggestions"),
        ):
            index = await self.index_service.ensure_built()
            try:
                query_lower = partial_query.lower()
                suggestions: dict[str, None] = {}
                for gram in generate_ngrams(partial_query, SUGGESTION_GRAM_SIZE):
                    for entry in index.entries_with_gram(gram, SUGGESTION_GRAM_SIZE):
                        for word in entry.searchable_text.split(" "):
                            if len(word) >= MIN_SUGGESTION_LENGTH and query_lower in word:
                                suggestions.setdefault(word[:1].upper() + word[1:], None)
                return list(suggestions)[:limit]
            except Exception:
                logger.error("Error in get_search_suggestions", exc_info=True)
                return []

    async def find_similar_doctors(self, doctor_id: str, limit: int | None = None) -> list[SimilarDoctor]:
        """Doctors whose profile text resembles ``doctor_id``'s, by trigram Dice.

        Unknown ids yield an empty list. The reference doctor is never part
        of its own result.
        """
        limit = self.settings.default_similar_limit if limit is None else limit
        threshold = self.settings.similar_doctor_threshold

        with (
            create_span("doctor_match.find_similar_doctors", attributes={"doctor.id": doctor_id, "limit": limit}),
            track_operation("find_similar_doctors"),
        ):
            try:
                index = await self.index_service.ensure_built()
                reference = index.get(doctor_id)
                if reference is None:
                    logger.debug("Similar doctors requested for unknown doctor %s", doctor_id)
                    return []

                reference_grams = reference.grams(SIMILARITY_GRAM_SIZE)
                similar: list[SimilarDoctor] = []
                for entry in index.entries():
                    if entry.doctor_id == doctor_id:
                        continue
                    score = dice_similarity(reference_grams, entry.grams(SIMILARITY_GRAM_SIZE))
                    if score > threshold:
                        similar.append(SimilarDoctor(doctor=entry.doctor, similarity_score=score))
            except Exception:
                logger.error("Error in find_similar_doctors", exc_info=True)
                raise

            similar.sort(key=lambda item: item.similarity_score, reverse=True)
            return similar[:limit]

    def get_ngram_statistics(self) -> NgramStatistics:
        """Statistics of the index as it is now; never triggers a build."""
        with track_operation("get_ngram_statistics"):
            return compute_ngram_statistics(self.index_service.index)
