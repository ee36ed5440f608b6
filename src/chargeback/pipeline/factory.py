"""
Pipeline Factory

Builds a ReportPipeline and its clients from an AppConfig. Cloud client
libraries are imported only for the backends that need them.
"""

import logging
from typing import Optional

import requests

from chargeback.core.config.models import AppConfig, FailureReportingConfig, PublishConfig, QueryConfig
from chargeback.pipeline.report import ReportPipeline
from chargeback.reporting.failure import FailureReporter
from chargeback.reporting.sinks import FailureSink, HttpIngestionSink, LoggingSink
from chargeback.sources.base import LogQueryClient
from chargeback.sources.memory import InMemoryLogSource
from chargeback.storage.base import BlobStore
from chargeback.storage.local import LocalBlobStore
from chargeback.storage.memory import InMemoryBlobStore


logger = logging.getLogger(__name__)


def create_query_client(config: QueryConfig) -> LogQueryClient:
    if config.source == "memory":
        return InMemoryLogSource()

    from google.cloud import bigquery
    from chargeback.sources.bigquery import BigQueryLogSource

    client = bigquery.Client(project=config.project_id)
    logger.debug(f"Using BigQuery log source in project {client.project}")
    return BigQueryLogSource(client, location=config.location, job_timeout=config.timeout_seconds)


def create_blob_store(config: PublishConfig) -> BlobStore:
    if config.store == "memory":
        return InMemoryBlobStore()
    if config.store == "local":
        return LocalBlobStore(config.local_root)

    from google.cloud import storage
    from chargeback.storage.gcs import GcsBlobStore

    client = storage.Client(project=config.project_id)
    return GcsBlobStore(client, timeout=config.timeout_seconds)


def create_failure_sink(config: FailureReportingConfig,
                        session: Optional[requests.Session] = None) -> FailureSink:
    if config.sink == "http":
        return HttpIngestionSink(
            config.endpoint,
            session=session,
            api_key=config.api_key,
            log_type=config.log_type,
            timeout=config.timeout_seconds,
            extra_headers=config.extra_headers
        )
    return LoggingSink()


def build_pipeline(config: AppConfig,
                   query_client: Optional[LogQueryClient] = None,
                   blob_store: Optional[BlobStore] = None,
                   failure_sink: Optional[FailureSink] = None) -> ReportPipeline:
    """
    Assemble a ReportPipeline for ``config``.

    Explicit clients take precedence over the configured backends.
    """
    return ReportPipeline(
        config,
        query_client=query_client or create_query_client(config.query),
        blob_store=blob_store or create_blob_store(config.publish),
        failure_reporter=FailureReporter(failure_sink or create_failure_sink(config.failure_reporting))
    )
