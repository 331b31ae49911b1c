"""Trigger retrieval."""

import logging
from typing import Dict, List

from catalog_crawler.crawl.info import RetrievalResult
from catalog_crawler.crawl.models import Table, Trigger
from catalog_crawler.crawl.options import RetrievalCategory
from catalog_crawler.crawl.retrievers.base import BaseRetriever, RetrievalContext
from catalog_crawler.database.records import MetadataRecord

logger = logging.getLogger(__name__)


class TriggerRetriever(BaseRetriever):
    """Adds triggers to every crawled table.

    A trigger fired by several events comes back as one row per event;
    the rows are merged into one Trigger.
    """

    category = RetrievalCategory.TRIGGERS

    def _retrieve(self, context: RetrievalContext, result: RetrievalResult) -> None:
        self._for_each(
            result,
            "triggers",
            context.catalog.tables,
            lambda table: self._retrieve_triggers(context, result, table),
        )

    def _retrieve_triggers(self, context: RetrievalContext, result: RetrievalResult, table: Table) -> None:
        schema = table.schema
        groups: Dict[str, List[MetadataRecord]] = {}
        with self._records(context.source.list_triggers, schema.catalog_name, schema.name, table.name) as records:
            for record in records:
                name = record.get_string("trigger_name")
                if name:
                    groups.setdefault(name, []).append(record)

        for name, rows in groups.items():
            if table.lookup_trigger(name) is not None:
                continue
            first = rows[0]
            events = []
            for record in rows:
                event = record.get_string("event_manipulation")
                if event and event.upper() not in events:
                    events.append(event.upper())
            table.add_trigger(Trigger(
                table=table,
                name=name,
                event_manipulation_types=events,
                action_timing=first.get_string("action_timing"),
                action_orientation=first.get_string("action_orientation"),
                action_condition=first.get_string("action_condition"),
                action_statement=first.get_string("action_statement"),
                action_order=first.get_int("action_order", 0),
            ))
            result.retrieved += 1
