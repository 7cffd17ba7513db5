"""
Two-Stage Validation Pipeline

DESIGN DECISION: Validation happens in two distinct stages:

STAGE 1 - SCHEMA VALIDATION:
- Required field presence
- Basic ranges (quantity must be at least 1)
- These always block

STAGE 2 - SEMANTIC VALIDATION:
- Negative prices, charges and amounts
- Selling below cost
- Unknown platform names
- These are warnings by default and errors in strict mode

WHY OPT-IN STRICTNESS: the ledger has always accepted negative prices
and amounts (corrections, write-offs). Rejecting them is a hardening
the operator turns on, not a default.

IMPORTANT: Validation NEVER silently fixes issues.
It reports them.
"""

from decimal import Decimal
from typing import Optional

from biztrack.errors import LedgerValidationError
from biztrack.models.ledger import BusinessSettings
from biztrack.models.validation import ValidationIssue, ValidationResult


ZERO = Decimal("0")


class LedgerValidator:
    """
    Validates ledger command input through a two-stage pipeline.

    Stage 1 runs the checks every command must pass.
    Stage 2 runs business sanity checks whose severity depends on
    strict mode.
    """

    def __init__(self, strict: bool = False):
        """
        Args:
            strict: Promote semantic warnings to blocking errors.
        """
        self._strict = strict

    @property
    def strict(self) -> bool:
        return self._strict

    def _semantic_severity(self) -> str:
        return "error" if self._strict else "warning"

    def _non_negative(
        self,
        field: str,
        label: str,
        value: Optional[Decimal],
    ) -> Optional[ValidationIssue]:
        if value is None or value >= ZERO:
            return None
        return ValidationIssue(
            field=field,
            issue_type="invalid_value",
            message=f"{label} is negative ({value})",
            severity=self._semantic_severity(),
            suggested_fix=f"Enter a {label.lower()} of zero or more",
        )

    def _build_result(
        self,
        subject: str,
        schema_issues: list[ValidationIssue],
        semantic_issues: list[ValidationIssue],
    ) -> ValidationResult:
        schema_valid = not any(i.severity == "error" for i in schema_issues)
        semantic_valid = not any(i.severity == "error" for i in semantic_issues)
        issues = schema_issues + semantic_issues
        return ValidationResult(
            subject=subject,
            schema_valid=schema_valid,
            semantic_valid=semantic_valid,
            is_valid=schema_valid and semantic_valid,
            issues=issues,
            warnings=[i.message for i in issues if i.severity == "warning"],
        )

    def validate_product(
        self,
        name: str,
        buying_price: Decimal,
        selling_price: Decimal,
        stock: int,
    ) -> ValidationResult:
        """Validate a product before it is created or edited."""
        schema_issues = []
        if not name or not name.strip():
            schema_issues.append(ValidationIssue(
                field="name",
                issue_type="missing",
                message="Product name is required",
                severity="error",
            ))

        semantic_issues = [
            issue for issue in (
                self._non_negative("buying_price", "Buying price", buying_price),
                self._non_negative("selling_price", "Selling price", selling_price),
            )
            if issue is not None
        ]
        if stock < 0:
            semantic_issues.append(ValidationIssue(
                field="stock",
                issue_type="invalid_value",
                message=f"Opening stock is negative ({stock})",
                severity=self._semantic_severity(),
            ))
        if buying_price is not None and selling_price is not None and selling_price < buying_price:
            semantic_issues.append(ValidationIssue(
                field="selling_price",
                issue_type="suspicious_value",
                message=(
                    f"Selling price ({selling_price}) is below "
                    f"buying price ({buying_price})"
                ),
                severity="warning",
                suggested_fix="Check the prices; every sale will book a loss",
            ))

        return self._build_result("product", schema_issues, semantic_issues)

    def validate_sale(
        self,
        quantity: int,
        unit_price: Optional[Decimal],
        delivery_charge: Decimal,
        platform: str,
        settings: BusinessSettings,
    ) -> ValidationResult:
        """Validate sale input for create_sale and update_sale."""
        schema_issues = []
        if quantity < 1:
            schema_issues.append(ValidationIssue(
                field="quantity",
                issue_type="invalid_value",
                message=f"Quantity must be at least 1 (got {quantity})",
                severity="error",
            ))

        semantic_issues = [
            issue for issue in (
                self._non_negative("unit_price", "Unit price", unit_price),
                self._non_negative("delivery_charge", "Delivery charge", delivery_charge),
            )
            if issue is not None
        ]
        if platform and not any(p.name == platform for p in settings.platforms):
            semantic_issues.append(ValidationIssue(
                field="platform",
                issue_type="unknown_reference",
                message=f"Platform '{platform}' is not configured; no fee will be charged",
                severity="info",
            ))

        return self._build_result("sale", schema_issues, semantic_issues)

    def validate_expense(self, description: str, amount: Decimal) -> ValidationResult:
        """Validate an expense entry."""
        semantic_issues = []
        issue = self._non_negative("amount", "Amount", amount)
        if issue is not None:
            semantic_issues.append(issue)
        if not description:
            semantic_issues.append(ValidationIssue(
                field="description",
                issue_type="missing",
                message="Expense has no description",
                severity="info",
            ))
        return self._build_result("expense", [], semantic_issues)

    def ensure_valid(self, result: ValidationResult) -> ValidationResult:
        """
        Raise if the result has blocking errors.

        Raises:
            LedgerValidationError: carrying the full result
        """
        if result.has_errors:
            raise LedgerValidationError(
                "; ".join(result.error_messages),
                result=result,
            )
        return result

    def get_user_friendly_summary(
        self,
        result: ValidationResult,
    ) -> str:
        """Summary suitable for showing to the shop owner."""
        if result.is_valid and not result.warnings:
            return "All checks passed."

        lines = []

        if result.has_errors:
            lines.append(f"The {result.subject} could not be saved:")
            for issue in result.issues:
                if issue.severity == "error":
                    lines.append(f"   • {issue.message}")
                    if issue.suggested_fix:
                        lines.append(f"     {issue.suggested_fix}")

        if result.warnings:
            if lines:
                lines.append("")
            lines.append("Please double-check:")
            for warning in result.warnings:
                lines.append(f"   • {warning}")

        return "\n".join(lines)
