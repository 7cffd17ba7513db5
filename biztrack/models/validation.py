"""
Validation Models

Results of LedgerValidator runs. Issues are reported, never silently
fixed; the caller decides whether a warning blocks.
"""

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, Field


class ValidationIssue(BaseModel):
    """A single validation issue found."""
    
    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'invalid_value', 'suspicious_value')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        ...,
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )
    suggested_fix: Optional[str] = Field(
        default=None,
        description="Suggested fix if available"
    )


class ValidationResult(BaseModel):
    """
    Result of the two-stage validation.
    
    Stage 1: Schema validation (required fields, basic ranges)
    Stage 2: Semantic validation (business sanity checks)
    """
    
    subject: str = Field(
        ...,
        description="What was validated (e.g. 'product', 'sale')"
    )
    validated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )
    schema_valid: bool
    semantic_valid: bool
    is_valid: bool
    issues: list[ValidationIssue] = Field(default_factory=list)
    warnings: list[str] = Field(
        default_factory=list,
        description="Non-blocking warnings"
    )
    
    @property
    def has_errors(self) -> bool:
        """Check if there are any error-level issues."""
        return any(issue.severity == "error" for issue in self.issues)
    
    @property
    def error_count(self) -> int:
        """Count error-level issues."""
        return sum(1 for issue in self.issues if issue.severity == "error")
    
    @property
    def error_messages(self) -> list[str]:
        return [issue.message for issue in self.issues if issue.severity == "error"]
