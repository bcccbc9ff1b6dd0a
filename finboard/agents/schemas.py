"""
Request/response schemas for the AI flows.

Requests are what the dashboard hands to an agent; responses are what
the model's answer must validate against before anyone sees it.
Response models accept both snake_case and camelCase keys, because
models do not always follow the requested casing.
"""

from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from finboard.models.recurring import RecurringTransaction


class _ModelResponse(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# =============================================================================
# CATEGORIZATION
# =============================================================================

class CategorizationRequest(BaseModel):
    """A transaction to categorize."""

    text: str = Field(..., min_length=1, description="Transaction description")
    merchant: Optional[str] = None
    amount: Optional[Decimal] = None
    time: Optional[str] = Field(default=None, description="Transaction time (ISO format)")
    user_categories: list[str] = Field(
        default_factory=list,
        description="Categories the user already uses"
    )


class CategorizationResponse(_ModelResponse):
    category: str = Field(..., min_length=1)
    confidence: float = Field(..., ge=0.0, le=1.0)


# =============================================================================
# CASH-FLOW FORECAST
# =============================================================================

class ForecastRequest(BaseModel):
    """Inputs for a one-month cash-flow forecast."""

    historical_transactions: list[dict[str, Any]] = Field(default_factory=list)
    recurring_transactions: list[RecurringTransaction] = Field(default_factory=list)
    current_balance: Decimal
    as_of: date


class ForecastResponse(_ModelResponse):
    projected_balance: Decimal
    potential_risks: str
    suggestions: str


# =============================================================================
# SAVINGS SUGGESTIONS
# =============================================================================

class SavingsSuggestionsRequest(BaseModel):
    spending_data: str = Field(..., min_length=1, description="Summary of spending by category")
    financial_goals: str = Field(..., min_length=1)


class SavingsSuggestion(_ModelResponse):
    category: str
    suggestion: str
    estimated_savings: str


class SavingsSuggestionsResponse(_ModelResponse):
    suggestions: list[SavingsSuggestion] = Field(default_factory=list)


# =============================================================================
# DOCUMENT SCAN
# =============================================================================

class DocumentScanRequest(BaseModel):
    photo_data_uri: str = Field(
        ...,
        pattern=r"^data:[\w.+-]+/[\w.+-]+;base64,",
        description="Receipt or invoice image as 'data:<mimetype>;base64,<data>'"
    )


class DocumentScanResponse(_ModelResponse):
    amount: Decimal = Field(..., description="Total on the document in EUR")
    merchant: str
    date: str = Field(..., description="Document date (ISO format)")
    category: str


# =============================================================================
# QUOTE CALCULATOR
# =============================================================================

class CostItem(BaseModel):
    name: str = Field(..., min_length=1, description="e.g. 'Tagessatz'")
    value: Decimal = Field(..., ge=0)


class QuoteRequest(BaseModel):
    project_description: str = Field(..., min_length=1)
    location: str = Field(..., min_length=1)
    days: int = Field(..., ge=1)
    accommodation_provided: bool = False
    work_type: str = Field(..., min_length=1)
    deliverables: str = Field(..., min_length=1)
    cost_items: list[CostItem] = Field(default_factory=list)


class QuoteLineItem(_ModelResponse):
    item: str
    details: str
    amount: Decimal


class QuoteResponse(_ModelResponse):
    quote_title: str
    line_items: list[QuoteLineItem]
    total_amount: Decimal
    notes: str = ""

    @property
    def line_total(self) -> Decimal:
        return sum((item.amount for item in self.line_items), Decimal("0"))

    @property
    def is_consistent(self) -> bool:
        """Does the model's total match its own line items?"""
        return abs(self.line_total - self.total_amount) < Decimal("0.01")


# =============================================================================
# CONTRACT GENERATOR
# =============================================================================

class EmploymentType(str, Enum):
    FULL_TIME = "Festanstellung"
    PART_TIME = "Teilzeit"
    FREELANCER = "Freelancer"
    INTERN = "Praktikant"


class SalaryType(str, Enum):
    MONTHLY = "Monatlich"
    HOURLY = "Stündlich"


class ContractRequest(BaseModel):
    personnel_name: str = Field(..., min_length=1)
    personnel_address: str = Field(..., min_length=1)
    company_name: str = Field(..., min_length=1)
    company_address: str = Field(..., min_length=1)
    position: str = Field(..., min_length=1)
    employment_type: EmploymentType
    start_date: date
    end_date: Optional[date] = None
    salary: Decimal = Field(..., gt=0)
    salary_type: SalaryType
    weekly_hours: Optional[Decimal] = Field(default=None, gt=0)
    vacation_days: Optional[int] = Field(default=None, ge=0)
    probation_period_months: Optional[int] = Field(default=None, ge=0)
    custom_clauses: Optional[str] = None

    @model_validator(mode='after')
    def validate_dates(self) -> 'ContractRequest':
        if self.end_date and self.end_date < self.start_date:
            raise ValueError("Contract end date cannot be before start date")
        return self


class ContractResponse(_ModelResponse):
    contract_markdown: str = Field(..., min_length=1)


# =============================================================================
# FINANCE Q&A
# =============================================================================

class FinBotRequest(BaseModel):
    question: str = Field(..., min_length=1)
    financial_data: dict[str, Any] = Field(default_factory=dict)


class FinBotResponse(_ModelResponse):
    answer: str = Field(..., min_length=1)
