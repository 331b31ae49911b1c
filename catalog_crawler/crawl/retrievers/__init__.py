"""Retrievers, one per metadata category, in the order a crawl runs them."""

from typing import Dict, List, Type

from catalog_crawler.crawl.options import RetrievalCategory
from catalog_crawler.crawl.retrievers.base import BaseRetriever, RetrievalContext
from catalog_crawler.crawl.retrievers.columns import ColumnRetriever
from catalog_crawler.crawl.retrievers.constraints import TableConstraintRetriever
from catalog_crawler.crawl.retrievers.data_types import DataTypeRetriever
from catalog_crawler.crawl.retrievers.indexes import IndexRetriever
from catalog_crawler.crawl.retrievers.keys import ForeignKeyRetriever, PrimaryKeyRetriever
from catalog_crawler.crawl.retrievers.routines import RoutineParameterRetriever, RoutineRetriever
from catalog_crawler.crawl.retrievers.row_counts import TableRowCountRetriever
from catalog_crawler.crawl.retrievers.schemas import SchemaRetriever
from catalog_crawler.crawl.retrievers.synonyms import SynonymRetriever
from catalog_crawler.crawl.retrievers.tables import TableRetriever
from catalog_crawler.crawl.retrievers.triggers import TriggerRetriever
from catalog_crawler.crawl.retrievers.views import ViewDefinitionRetriever

RETRIEVER_ORDER: List[Type[BaseRetriever]] = [
    SchemaRetriever,
    DataTypeRetriever,
    TableRetriever,
    ColumnRetriever,
    PrimaryKeyRetriever,
    ForeignKeyRetriever,
    IndexRetriever,
    TableConstraintRetriever,
    TriggerRetriever,
    ViewDefinitionRetriever,
    RoutineRetriever,
    RoutineParameterRetriever,
    SynonymRetriever,
    TableRowCountRetriever,
]

RETRIEVERS_BY_CATEGORY: Dict[RetrievalCategory, Type[BaseRetriever]] = {
    retriever.category: retriever for retriever in RETRIEVER_ORDER
}

__all__ = [
    "BaseRetriever",
    "RetrievalContext",
    "RETRIEVER_ORDER",
    "RETRIEVERS_BY_CATEGORY",
    "SchemaRetriever",
    "DataTypeRetriever",
    "TableRetriever",
    "ColumnRetriever",
    "PrimaryKeyRetriever",
    "ForeignKeyRetriever",
    "IndexRetriever",
    "TableConstraintRetriever",
    "TriggerRetriever",
    "ViewDefinitionRetriever",
    "RoutineRetriever",
    "RoutineParameterRetriever",
    "SynonymRetriever",
    "TableRowCountRetriever",
]
