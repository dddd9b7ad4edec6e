"""
OG Image Models

Pydantic response models for the JSON endpoints.
"""

from typing import List
from pydantic import BaseModel, Field


class CacheStats(BaseModel):
    """Cache and admission counters"""
    memory_hits: int
    disk_hits: int
    misses: int
    writes: int
    rejected_writes: int
    storage_errors: int
    memory_entries: int
    disk_entries: int
    total_size_bytes: int
    total_size_mb: float
    max_size_mb: int
    usage_percent: float
    renders_in_flight: int
    max_concurrent_renders: int


class CacheStatsResponse(BaseModel):
    """Response model for stats endpoint"""
    success: bool = True
    stats: CacheStats


class CleanupResponse(BaseModel):
    """Response model for cleanup and clear endpoints"""
    success: bool = True
    removed_entries: int
    current_stats: CacheStats


class UsageResponse(BaseModel):
    """Returned by the root endpoint when no url is given"""
    service: str = "URL to OpenGraph Image Service"
    usage: str = Field(..., description="Example request")
    max_width: int
    max_height: int
    default_width: int
    default_height: int
    allowed_domains: List[str] = Field(default_factory=list)
