from educore.application.use_cases.collection import ResourceCollection
from educore.application.use_cases.mutation_engine import MutationEngine, PendingMutation
from educore.application.use_cases.query_coordinator import QueryCoordinator, QueryStatus

__all__ = [
    "MutationEngine",
    "PendingMutation",
    "QueryCoordinator",
    "QueryStatus",
    "ResourceCollection",
]
