"""
Configuration Models

Pydantic models for type-safe configuration of the chargeback report
pipeline: the log query, the CSV layout, the publish target and failure
reporting.
"""

from typing import Dict, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class QueryConfig(BaseModel):
    """Configuration for the usage aggregation query."""

    source: Literal["bigquery", "memory"] = Field(
        default="bigquery",
        description="Log query backend"
    )
    project_id: Optional[str] = Field(
        default=None,
        description="Cloud project that owns the log tables (defaults to client credentials)"
    )
    workspace_id: str = Field(
        default="gateway_logs",
        min_length=1,
        description="Dataset or workspace holding the gateway log tables"
    )
    requests_table: str = Field(
        default="gateway_requests",
        description="Table of gateway request records"
    )
    usage_table: str = Field(
        default="gateway_llm_usage",
        description="Table of per-request usage detail records"
    )
    query_text: Optional[str] = Field(
        default=None,
        description="Override for the aggregation query text"
    )
    lookback_hours: int = Field(
        default=24,
        ge=1,
        le=24 * 31,
        description="Lookback window in hours"
    )
    location: Optional[str] = Field(
        default=None,
        description="Query job location"
    )
    timeout_seconds: float = Field(
        default=300.0,
        gt=0,
        le=3600.0,
        description="Timeout for the query stage"
    )

    @field_validator('requests_table', 'usage_table')
    @classmethod
    def validate_table_name(cls, v: str) -> str:
        if not v or any(ch in v for ch in "`; \n"):
            raise ValueError(f"Invalid table name: {v!r}")
        return v


class ReportFormatConfig(BaseModel):
    """CSV layout of the published report."""

    delimiter: str = Field(
        default=",",
        min_length=1,
        max_length=1,
        description="Field delimiter character"
    )
    multi_value_separator: str = Field(
        default="|",
        min_length=1,
        description="Separator joining multi-value fields inside one CSV field"
    )
    line_terminator: str = Field(
        default="\n",
        description="Line terminator sequence"
    )
    encoding: str = Field(
        default="utf-8",
        description="Text encoding of the report payload"
    )

    @field_validator('line_terminator')
    @classmethod
    def validate_line_terminator(cls, v: str) -> str:
        if v not in ("\n", "\r\n"):
            raise ValueError("line_terminator must be '\\n' or '\\r\\n'")
        return v

    @field_validator('encoding')
    @classmethod
    def validate_encoding(cls, v: str) -> str:
        import codecs
        try:
            codecs.lookup(v)
        except LookupError:
            raise ValueError(f"Unknown encoding: {v}")
        return v

    @model_validator(mode='after')
    def validate_separators(self):
        if self.delimiter in self.multi_value_separator:
            raise ValueError("multi_value_separator must not contain the CSV delimiter")
        if any(char in self.multi_value_separator for char in ('\r', '\n', '"')):
            raise ValueError("multi_value_separator must not contain line breaks or quotes")
        return self


class PublishConfig(BaseModel):
    """Target location of the published report."""

    store: Literal["gcs", "local", "memory"] = Field(
        default="gcs",
        description="Blob store backend"
    )
    project_id: Optional[str] = Field(
        default=None,
        description="Cloud project of the storage bucket"
    )
    container: str = Field(
        default="reportoutput",
        min_length=1,
        description="Bucket or container name"
    )
    blob_path: str = Field(
        default="dailyChargeBackReport.csv",
        min_length=1,
        description="Object path inside the container"
    )
    local_root: str = Field(
        default="./reports",
        description="Root directory for the local store"
    )
    timeout_seconds: float = Field(
        default=120.0,
        gt=0,
        le=3600.0,
        description="Timeout for the publish stage"
    )

    @field_validator('blob_path')
    @classmethod
    def validate_blob_path(cls, v: str) -> str:
        if v.startswith('/') or v.endswith('/'):
            raise ValueError("blob_path must be relative to the container and name an object")
        if '..' in v.split('/'):
            raise ValueError("blob_path must not contain '..' segments")
        return v

    @property
    def target(self) -> str:
        """Full target location as ``container/path``."""
        return f"{self.container}/{self.blob_path}"


class FailureReportingConfig(BaseModel):
    """Where failure events are sent."""

    sink: Literal["http", "log"] = Field(
        default="log",
        description="Failure sink: HTTP ingestion endpoint or application log"
    )
    endpoint: Optional[str] = Field(
        default=None,
        description="Ingestion endpoint URL (required for the http sink)"
    )
    api_key: Optional[str] = Field(
        default=None,
        description="Bearer token sent to the ingestion endpoint"
    )
    log_type: str = Field(
        default="ChargebackFailures",
        description="Record type header sent with each event"
    )
    timeout_seconds: float = Field(
        default=10.0,
        gt=0,
        le=120.0,
        description="HTTP timeout for the ingestion request"
    )
    extra_headers: Dict[str, str] = Field(
        default_factory=dict,
        description="Additional HTTP headers"
    )

    @field_validator('endpoint')
    @classmethod
    def validate_endpoint(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not v.startswith(("http://", "https://")):
            raise ValueError("endpoint must be an http(s) URL")
        return v

    @model_validator(mode='after')
    def validate_http_sink(self):
        if self.sink == "http" and not self.endpoint:
            raise ValueError("endpoint is required when sink is 'http'")
        return self


class AppConfig(BaseModel):
    """
    Main application configuration combining all sections.

    The root of the configuration hierarchy, assembled by ConfigManager from
    files, environment variables and CLI overrides.
    """

    model_config = ConfigDict(
        validate_assignment=True,
        extra='forbid',
    )

    workflow_name: str = Field(
        default="daily-chargeback-report",
        min_length=1,
        description="Workflow name written to failure events"
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Application log level"
    )

    query: QueryConfig = Field(default_factory=QueryConfig)
    report: ReportFormatConfig = Field(default_factory=ReportFormatConfig)
    publish: PublishConfig = Field(default_factory=PublishConfig)
    failure_reporting: FailureReportingConfig = Field(default_factory=FailureReportingConfig)

    @field_validator('log_level', mode='before')
    @classmethod
    def normalize_log_level(cls, v):
        return v.upper() if isinstance(v, str) else v
