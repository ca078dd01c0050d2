"""
BatchSearchDispatcher - feeds an assignment's queries to the search orchestrator.

At most ``batch_size`` queries are searched concurrently, with a short pause
between batches to stay under provider rate limits. Within a batch each query
fans out to its providers as usual.
"""

import asyncio

from models.query import Assignment, Query
from models.search import SearchOptions, SearchRequest, SearchResponse
from orchestrator.search_orchestrator import SearchOrchestrator
from utils.logger import get_logger

logger = get_logger(__name__)


class BatchSearchDispatcher:
    def __init__(
        self,
        orchestrator: SearchOrchestrator,
        batch_size: int = 3,
        batch_delay_s: float = 1.0,
        results_per_query: int = 5,
    ):
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        self._orchestrator = orchestrator
        self.batch_size = batch_size
        self.batch_delay_s = batch_delay_s
        self.results_per_query = results_per_query

    def to_request(self, query: Query) -> SearchRequest:
        return SearchRequest(
            query_text=query.text,
            provider_hint=query.source_hint,
            options=SearchOptions(max_results=self.results_per_query),
        )

    async def search_queries(self, queries: list[Query]) -> list[SearchResponse]:
        """Search every query, batch by batch; responses come back in input order."""
        responses: list[SearchResponse] = []
        for offset in range(0, len(queries), self.batch_size):
            if offset and self.batch_delay_s > 0:
                await asyncio.sleep(self.batch_delay_s)

            batch = queries[offset : offset + self.batch_size]
            batch_responses = await asyncio.gather(
                *(self._orchestrator.search(self.to_request(q)) for q in batch)
            )
            responses.extend(batch_responses)
            logger.info(
                f"Dispatched search batch {offset // self.batch_size + 1}",
                extra={
                    "extra_fields": {
                        "batch_size": len(batch),
                        "result_counts": [len(r.results) for r in batch_responses],
                        "error_counts": [len(r.errors) for r in batch_responses],
                    }
                },
            )
        return responses

    async def search_assignment(self, assignment: Assignment) -> list[SearchResponse]:
        return await self.search_queries(list(assignment.queries))

    def search_queries_sync(self, queries: list[Query]) -> list[SearchResponse]:
        return asyncio.run(self.search_queries(queries))
