"""
BigQuery Log Source

Runs the aggregation query as a BigQuery job against the dataset holding the
gateway log tables. Transport and API errors are classified into the shared
stage status set instead of being raised.
"""

import concurrent.futures
from typing import Any, Dict, List, Optional

import requests
from google.api_core import exceptions as gcp_exceptions
from google.cloud import bigquery

from chargeback.models import StageStatus
from chargeback.sources.base import LogQueryClient, QueryResult


LOOKBACK_PARAMETER = "lookback_hours"


class BigQueryLogSource(LogQueryClient):
    """
    Log query client over an authenticated ``bigquery.Client``.

    The client is injected already authenticated; this class never resolves
    credentials on its own.
    """

    def __init__(self, client: bigquery.Client,
                 location: Optional[str] = None,
                 job_timeout: Optional[float] = None):
        """
        Args:
            client: Authenticated BigQuery client
            location: Job location (region of the dataset)
            job_timeout: Seconds to wait for the job result
        """
        super().__init__()
        self.client = client
        self.location = location
        self.job_timeout = job_timeout

    def _job_config(self, query_text: str, lookback_hours: int) -> bigquery.QueryJobConfig:
        parameters = []
        if f"@{LOOKBACK_PARAMETER}" in query_text:
            parameters.append(
                bigquery.ScalarQueryParameter(LOOKBACK_PARAMETER, "INT64", lookback_hours)
            )
        return bigquery.QueryJobConfig(query_parameters=parameters)

    def query(self, query_text: str, workspace_id: str, lookback_hours: int) -> QueryResult:
        job_config = self._job_config(query_text, lookback_hours)
        self.logger.info(f"Running aggregation query on {workspace_id} ({lookback_hours}h window)")

        try:
            query_job = self.client.query(query_text, job_config=job_config, location=self.location)
            rows = query_job.result(timeout=self.job_timeout)
            records: List[Dict[str, Any]] = [dict(row.items()) for row in rows]
        except (concurrent.futures.TimeoutError, gcp_exceptions.DeadlineExceeded,
                requests.exceptions.Timeout) as e:
            return QueryResult.failed(
                f"Query timed out: {e}",
                status=StageStatus.TIMED_OUT,
                error_code="Timeout"
            )
        except gcp_exceptions.BadRequest as e:
            return QueryResult.failed(f"Query rejected: {e.message}", error_code="BadRequest")
        except (gcp_exceptions.Unauthorized, gcp_exceptions.Forbidden) as e:
            return QueryResult.failed(
                f"Not authorized to query {workspace_id}: {e.message}",
                error_code=type(e).__name__
            )
        except gcp_exceptions.NotFound as e:
            return QueryResult.failed(f"Query source not found: {e.message}", error_code="NotFound")
        except gcp_exceptions.GoogleAPIError as e:
            return QueryResult.failed(f"Log store error: {e}", error_code=type(e).__name__)
        except requests.exceptions.ConnectionError as e:
            return QueryResult.failed(f"Log store unreachable: {e}", error_code="ConnectionError")

        self.logger.info(f"Query returned {len(records)} rows")
        return QueryResult(rows=records)
