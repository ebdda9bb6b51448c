from pydantic import BaseModel, Field
from typing import Any, Dict, List, Optional


class HealthResponse(BaseModel):
    status: str = "ok"
    timestamp: str
    version: str


class ResolveResponse(BaseModel):
    url: str
    index: int
    resolved: str
    fallback_used: bool = False


class ResponsiveImageUrls(BaseModel):
    small: str
    medium: str
    large: str
    webp: str
    avif: str


class Product(BaseModel):
    """A product as returned by the marketplace search API."""
    id: Optional[Any] = None
    name: str = ""
    brand: Optional[str] = None
    category: Optional[str] = None
    price: Optional[float] = None
    seller: Optional[str] = None
    image: Optional[str] = None


class SearchResult(BaseModel):
    success: bool = True
    query: Optional[str] = None
    total: int = 0
    products: List[Product] = Field(default_factory=list)
    recommendations: List[Dict[str, Any]] = Field(default_factory=list)


class CheckResult(BaseModel):
    name: str
    passed: bool
    url: Optional[str] = None
    status_code: Optional[int] = None
    response_time_ms: Optional[int] = None
    message: Optional[str] = None
    missing_fields: List[str] = Field(default_factory=list)


class CheckSummary(BaseModel):
    total: int
    passed: int
    failed: int
    success_rate: float = Field(..., description="Percentage of passed checks, one decimal")
    average_response_time_ms: Optional[int] = None
    results: List[CheckResult] = Field(default_factory=list)

    @classmethod
    def from_results(cls, results: List[CheckResult]) -> "CheckSummary":
        passed = sum(1 for r in results if r.passed)
        times = [r.response_time_ms for r in results if r.response_time_ms is not None]
        return cls(
            total=len(results),
            passed=passed,
            failed=len(results) - passed,
            success_rate=round(passed / len(results) * 100, 1) if results else 0.0,
            average_response_time_ms=int(round(sum(times) / len(times))) if times else None,
            results=results,
        )
