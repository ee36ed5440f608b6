"""
Aggregation Query Text

Default BigQuery SQL for the chargeback aggregation. The lookback window is
bound as the ``@lookback_hours`` query parameter.
"""

from chargeback.core.config.models import QueryConfig
from chargeback.models import MULTI_VALUE_CAP


USAGE_AGGREGATION_QUERY = """
SELECT
  r.product_id AS productId,
  u.deployment_name AS modelName,
  SUM(u.prompt_tokens) AS promptTokens,
  SUM(u.completion_tokens) AS completionTokens,
  SUM(u.total_tokens) AS totalTokens,
  COUNT(*) AS callCount,
  MIN(r.time_generated) AS firstSeen,
  MAX(r.time_generated) AS lastSeen,
  ARRAY_AGG(DISTINCT r.region IGNORE NULLS LIMIT {cap}) AS regions,
  ARRAY_AGG(DISTINCT r.caller_ip_address IGNORE NULLS LIMIT {cap}) AS callerIps,
  ARRAY_AGG(DISTINCT r.cache IGNORE NULLS LIMIT {cap}) AS caches,
  ARRAY_AGG(DISTINCT r.backend_id IGNORE NULLS LIMIT {cap}) AS backendIds
FROM `{workspace}.{requests_table}` AS r
JOIN `{workspace}.{usage_table}` AS u
  ON r.correlation_id = u.correlation_id
WHERE r.time_generated >= TIMESTAMP_SUB(CURRENT_TIMESTAMP(), INTERVAL @lookback_hours HOUR)
  AND u.sequence_number = 0
  AND r.is_request_success
GROUP BY productId, modelName
ORDER BY totalTokens DESC, firstSeen
"""


def build_query(config: QueryConfig) -> str:
    """Return the configured query text or render the default aggregation."""
    if config.query_text:
        return config.query_text

    return USAGE_AGGREGATION_QUERY.format(
        cap=MULTI_VALUE_CAP,
        workspace=config.workspace_id,
        requests_table=config.requests_table,
        usage_table=config.usage_table,
    ).strip()
