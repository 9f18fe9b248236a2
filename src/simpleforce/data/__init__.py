from .query import QueryResult, execute_query
from .sobject import UNSET, SObject, SObjectAttributes

__all__ = ["QueryResult", "SObject", "SObjectAttributes", "UNSET", "execute_query"]
