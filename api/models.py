"""
Pydantic response models for the API.

Optional fields default to None so that rows with NULL columns validate.
Field() descriptions and examples feed the OpenAPI docs at /docs.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


# ── Repository models ─────────────────────────────────────────────────────────

class RepositoryItemOut(BaseModel):
    """A policy, report, or research document."""
    id: int = Field(..., description="Unique row ID", examples=[12])
    title: str = Field(..., description="Document title", examples=["Kenya Climate Change Act"])
    type: str = Field(..., description="policy | report | research", examples=["policy"])
    country: str | None = Field(None, description="Country the document concerns", examples=["Kenya"])
    year: int | None = Field(None, description="Publication year", examples=[2016])
    description: str | None = Field(None, description="Abstract or summary")
    source: str | None = Field(None, description="Publishing body", examples=["Government of Kenya"])
    link: str | None = Field(None, description="URL of the document")
    file_path: str | None = Field(None, description="Path of a locally stored copy")
    sector: str | None = Field(None, description="Sector tag", examples=["Energy"])
    created_at: str | None = Field(None, description="Row creation timestamp (UTC)")
    updated_at: str | None = Field(None, description="Row update timestamp (UTC)")


# ── Policy analysis models ────────────────────────────────────────────────────

class PolicyAnalysisOut(BaseModel):
    """A per-country, per-source scored assessment. Scores are 0–100."""
    id: int = Field(..., description="Unique row ID", examples=[3])
    country: str = Field(..., description="Country name", examples=["Rwanda"])
    governance_score: float | None = Field(None, description="Governance score", examples=[78.5])
    mitigation_score: float | None = Field(None, description="Mitigation score", examples=[74.0])
    adaptation_score: float | None = Field(None, description="Adaptation score", examples=[76.1])
    overall_index: float | None = Field(None, description="Overall index", examples=[76.2])
    source: str = Field(..., description="Assessment source", examples=["NDC Review 2023"])
    classification: str = Field(..., description="NDC band of overall_index", examples=["Satisfactory"])
    created_at: str | None = Field(None, description="Row creation timestamp (UTC)")
    updated_at: str | None = Field(None, description="Row update timestamp (UTC)")


class RankingEntry(BaseModel):
    """One row of a metric ranking.

    The ranked score is carried under its own column name, e.g.
    ``{"country": "Rwanda", "overall_index": 76.2, "source": "NDC Review 2023"}``.
    """
    model_config = ConfigDict(extra="allow")

    country: str = Field(..., description="Country name", examples=["Rwanda"])
    source: str = Field(..., description="Assessment source", examples=["NDC Review 2023"])


# ── Climate cache models ──────────────────────────────────────────────────────

class ClimateMetricOut(BaseModel):
    """A cached climate measurement for a country/metric/year/month."""
    id: int = Field(..., description="Unique row ID")
    country: str = Field(..., description="Country name", examples=["Uganda"])
    metric: str = Field(..., description="Metric name", examples=["temperature"])
    year: int = Field(..., description="Measurement year", examples=[2023])
    month: int | None = Field(None, description="Month 1–12; null for annual aggregates", examples=[7])
    value: float | None = Field(None, description="Measured value", examples=[22.4])
    data_source: str | None = Field(None, description="External provider", examples=["Open-Meteo"])
    raw_data: Any = Field(None, description="Original provider payload")
    cached_at: str | None = Field(None, description="When the row was cached (UTC)")
    expires_at: str | None = Field(None, description="Cache expiry (UTC)")


class ClimateDataResponse(BaseModel):
    """Response body for GET /api/climate/{country}/{metric}."""
    source: str = Field(..., description="'cache' or 'external-api-placeholder'", examples=["cache"])
    message: str | None = Field(None, description="Explanation when nothing is cached")
    data: list[ClimateMetricOut] = Field(..., description="Cached rows, most recent first")


class ClimateIndicatorOut(BaseModel):
    """One of the latest indicators shown on the map for a country."""
    metric: str = Field(..., examples=["rainfall"])
    year: int = Field(..., examples=[2024])
    month: int | None = Field(None, examples=[3])
    value: float | None = Field(None, examples=[88.2])


# ── Aggregation models ────────────────────────────────────────────────────────

class SectorAggregate(BaseModel):
    """Repository item counts for one sector."""
    sector: str = Field(..., examples=["Agriculture"])
    total_items: int = Field(..., examples=[14])
    total_policies: int = Field(..., examples=[6])
    total_reports: int = Field(..., examples=[5])
    total_research: int = Field(..., examples=[3])


class StatsOverview(BaseModel):
    """Dashboard headline numbers."""
    total_policies: int = Field(..., examples=[42])
    total_reports: int = Field(..., examples=[17])
    total_research: int = Field(..., examples=[23])
    total_countries: int = Field(..., description="Distinct countries with documents", examples=[7])
    countries_analyzed: int = Field(..., description="Distinct countries with policy analysis", examples=[7])
    avg_overall_index: float | None = Field(None, examples=[64.3])
    highest_index: float | None = Field(None, examples=[76.2])
    lowest_index: float | None = Field(None, examples=[41.0])


# ── Meta models ───────────────────────────────────────────────────────────────

class HealthOut(BaseModel):
    """Response body for GET /api/health."""
    status: str = Field(..., description="healthy | unhealthy", examples=["healthy"])
    database: str = Field(..., description="connected | disconnected", examples=["connected"])
    timestamp: str = Field(..., description="ISO-8601 time of the check")
    error: str | None = Field(None, description="Present when unhealthy")


class ErrorResponse(BaseModel):
    """Standard error response body."""
    error: str = Field(..., description="Short error message", examples=["Item not found"])
    detail: str | None = Field(None, description="Extended error detail")
    status_code: int = Field(..., ge=400, le=599, description="HTTP status code", examples=[404])
