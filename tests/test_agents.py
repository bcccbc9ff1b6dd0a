"""
Tests for the AI agents.

The model call is replaced by FakeModel, so prompts and response
handling are tested without any network access.
"""

import asyncio
import pytest
from datetime import date
from decimal import Decimal

from finboard.agents import (
    AdvisorAgent,
    AgentError,
    AgentResponseError,
    BookkeepingAgent,
    DraftingAgent,
    InlineMedia,
    ModelCallError,
    extract_json,
)
from finboard.agents.schemas import (
    CategorizationRequest,
    ContractRequest,
    CostItem,
    DocumentScanRequest,
    EmploymentType,
    FinBotRequest,
    ForecastRequest,
    QuoteRequest,
    SalaryType,
    SavingsSuggestionsRequest,
)
from finboard.models import AuditEventType, Frequency, RecurringTransaction


class FakeModel:
    """Records prompts and replays canned responses (or raises them)."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls = []

    async def __call__(self, prompt, media=None):
        self.calls.append((prompt, media))
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    @property
    def prompt(self) -> str:
        return self.calls[-1][0]


def _contract_request(**overrides) -> ContractRequest:
    data = dict(
        personnel_name="Erika Musterfrau",
        personnel_address="Hauptstraße 1, 10115 Berlin",
        company_name="Muster GmbH",
        company_address="Industrieweg 5, 80331 München",
        position="Videograf",
        employment_type=EmploymentType.FREELANCER,
        start_date=date(2024, 7, 1),
        salary=Decimal("45"),
        salary_type=SalaryType.HOURLY,
    )
    data.update(overrides)
    return ContractRequest(**data)


class TestExtractJson:
    """Tests for extract_json."""

    def test_strips_code_fence(self):
        """Test JSON wrapped in a markdown fence."""
        assert extract_json('```json\n{"a": 1}\n```') == {"a": 1}

    def test_ignores_surrounding_prose(self):
        """Test JSON embedded in text."""
        assert extract_json('Hier ist das Ergebnis: {"a": {"b": 2}} Viel Erfolg!') == {"a": {"b": 2}}

    @pytest.mark.parametrize("text", ["kein JSON", "[1, 2]", "{kaputt}"])
    def test_rejects_non_objects(self, text):
        """Test that missing or broken JSON raises ValueError."""
        with pytest.raises(ValueError):
            extract_json(text)


class TestInlineMedia:
    """Tests for InlineMedia."""

    def test_from_data_uri(self):
        """Test decoding a data URI."""
        media = InlineMedia.from_data_uri("data:image/png;base64,aGVsbG8=")
        assert media.mime_type == "image/png"
        assert media.data == b"hello"
        assert media.to_part() == {"mime_type": "image/png", "data": b"hello"}

    @pytest.mark.parametrize("uri", [
        "not a uri",
        "data:image/png;base64,@@@",
        "data:text/plain;base64,aGVsbG8=",
    ])
    def test_rejects_bad_uris(self, uri):
        """Test malformed URIs, invalid base64 and unsupported types."""
        with pytest.raises(ValueError):
            InlineMedia.from_data_uri(uri)


class TestBookkeepingAgent:
    """Tests for BookkeepingAgent."""

    def test_categorize(self):
        """Test categorization with the user's own categories."""
        model = FakeModel('```json\n{"category": "Lebensmittel", "confidence": 0.92}\n```')
        agent = BookkeepingAgent(generate=model)

        result = asyncio.run(agent.categorize(CategorizationRequest(
            text="REWE Markt 1234",
            amount=Decimal("-42.17"),
            user_categories=["Lebensmittel", "Haushalt"],
        )))

        assert result.category == "Lebensmittel"
        assert result.confidence == pytest.approx(0.92)
        assert "REWE Markt 1234" in model.prompt
        assert "- Haushalt" in model.prompt
        assert "-42,17 €" in model.prompt

    def test_categorize_without_user_categories(self):
        """Test that example categories are offered."""
        model = FakeModel('{"category": "Transport", "confidence": 0.7}')
        asyncio.run(BookkeepingAgent(generate=model).categorize(CategorizationRequest(text="DB Ticket")))
        assert "Beispielkategorien" in model.prompt

    def test_out_of_range_confidence(self):
        """Test that schema violations are rejected."""
        model = FakeModel('{"category": "Transport", "confidence": 1.5}')
        with pytest.raises(AgentResponseError) as exc_info:
            asyncio.run(BookkeepingAgent(generate=model).categorize(CategorizationRequest(text="DB Ticket")))
        assert exc_info.value.flow == "categorization"
        assert "1.5" in exc_info.value.raw_response

    def test_prose_answer(self):
        """Test that an answer without JSON is rejected."""
        model = FakeModel("Das ist wohl Transport.")
        with pytest.raises(AgentResponseError):
            asyncio.run(BookkeepingAgent(generate=model).categorize(CategorizationRequest(text="DB Ticket")))

    def test_empty_answer(self):
        """Test that an empty answer is rejected."""
        model = FakeModel("   ")
        with pytest.raises(AgentResponseError):
            asyncio.run(BookkeepingAgent(generate=model).categorize(CategorizationRequest(text="DB Ticket")))

    def test_model_failure_is_audited(self, audit_logger, audit_storage):
        """Test that an unreachable model is logged and reported."""
        model = FakeModel(ConnectionError("unreachable"))
        agent = BookkeepingAgent(generate=model, audit_logger=audit_logger)

        with pytest.raises(ModelCallError):
            asyncio.run(agent.categorize(CategorizationRequest(text="DB Ticket")))

        [event] = audit_storage.get_recent_events()
        assert event.event_type == AuditEventType.EXTERNAL_SERVICE_ERROR
        assert event.details["service"] == "model:categorization"

    def test_scan_document(self):
        """Test that the image is passed along with the prompt."""
        model = FakeModel('{"amount": 12.5, "merchant": "REWE", "date": "2024-05-01", "category": "Lebensmittel"}')
        agent = BookkeepingAgent(generate=model)

        result = asyncio.run(agent.scan_document(
            DocumentScanRequest(photo_data_uri="data:image/jpeg;base64,aGVsbG8=")
        ))

        assert result.amount == Decimal("12.5")
        assert result.merchant == "REWE"
        media = model.calls[0][1]
        assert media.mime_type == "image/jpeg"

    def test_scan_document_bad_image(self):
        """Test that an undecodable image never reaches the model."""
        model = FakeModel()
        with pytest.raises(AgentError):
            asyncio.run(BookkeepingAgent(generate=model).scan_document(
                DocumentScanRequest(photo_data_uri="data:image/png;base64,@@@")
            ))
        assert model.calls == []


class TestAdvisorAgent:
    """Tests for AdvisorAgent."""

    def test_forecast_includes_upcoming_payments(self):
        """Test that the prompt carries the deterministic schedule facts."""
        recurring = [
            RecurringTransaction(
                description="Miete",
                amount=Decimal("-1200"),
                frequency=Frequency.MONTHLY,
                start_date=date(2024, 1, 1),
            ),
            RecurringTransaction(
                description="Gehalt",
                amount=Decimal("3500"),
                frequency=Frequency.MONTHLY,
                start_date=date(2024, 1, 15),
            ),
        ]
        model = FakeModel('{"projectedBalance": 4800.5, "potentialRisks": "Keine", "suggestions": "Weiter so"}')

        result = asyncio.run(AdvisorAgent(generate=model).forecast_cash_flow(ForecastRequest(
            recurring_transactions=recurring,
            current_balance=Decimal("2500"),
            as_of=date(2024, 6, 10),
        )))

        assert result.projected_balance == Decimal("4800.5")
        assert result.potential_risks == "Keine"
        assert '"date": "2024-07-01", "description": "Miete"' in model.prompt
        assert '"date": "2024-06-15", "description": "Gehalt"' in model.prompt
        assert "Monatliche Einnahmen (normalisiert): 3500.00" in model.prompt

    def test_suggest_savings(self):
        """Test the savings suggestion list."""
        model = FakeModel(
            '{"suggestions": [{"category": "Abos", "suggestion": "Streaming kündigen", "estimatedSavings": "ca. 15 €"}]}'
        )
        result = asyncio.run(AdvisorAgent(generate=model).suggest_savings(SavingsSuggestionsRequest(
            spending_data="Unterhaltung: 120 €",
            financial_goals="Urlaub",
        )))
        assert result.suggestions[0].estimated_savings == "ca. 15 €"

    def test_ask_returns_plain_text(self):
        """Test that the finance bot answers in free text."""
        model = FakeModel("  Sie haben 42 € für Lebensmittel ausgegeben.  ")
        result = asyncio.run(AdvisorAgent(generate=model).ask(FinBotRequest(
            question="Wie viel habe ich für Lebensmittel ausgegeben?",
            financial_data={"Lebensmittel": "42"},
        )))
        assert result.answer == "Sie haben 42 € für Lebensmittel ausgegeben."
        assert "Lebensmittel" in model.prompt


class TestDraftingAgent:
    """Tests for DraftingAgent."""

    def test_quote_with_cost_items(self):
        """Test that user cost items replace the default rates."""
        model = FakeModel(
            '{"quoteTitle": "Imagefilm", "lineItems": ['
            '{"item": "Tagessatz", "details": "2 Tage", "amount": 1400}], '
            '"totalAmount": 1400, "notes": "Gültig für 14 Tage."}'
        )
        result = asyncio.run(DraftingAgent(generate=model).generate_quote(QuoteRequest(
            project_description="Imagefilm für ein Café",
            location="Köln",
            days=2,
            work_type="Video",
            deliverables="1 Film, 3 Reels",
            cost_items=[CostItem(name="Tagessatz", value=Decimal("700"))],
        )))

        assert result.is_consistent
        assert result.total_amount == Decimal("1400")
        assert "- Tagessatz: 700€" in model.prompt
        assert "800€" not in model.prompt

    def test_quote_default_rates(self):
        """Test the default calculation basis."""
        model = FakeModel('{"quoteTitle": "Shooting", "lineItems": [], "totalAmount": 0}')
        result = asyncio.run(DraftingAgent(generate=model).generate_quote(QuoteRequest(
            project_description="Produktfotos",
            location="Hamburg",
            days=1,
            accommodation_provided=True,
            work_type="Foto",
            deliverables="20 Bilder",
        )))
        assert "Tagessatz als Content Creator: 800€" in model.prompt
        assert "Unterkunft wird gestellt: Ja" in model.prompt
        assert result.notes == ""

    def test_contract_accepts_plain_markdown(self):
        """Test that a bare Markdown answer becomes the contract."""
        model = FakeModel("# Freier Mitarbeitervertrag\n\n§ 1 Tätigkeit")
        result = asyncio.run(DraftingAgent(generate=model).generate_contract(_contract_request()))
        assert result.contract_markdown.startswith("# Freier Mitarbeitervertrag")
        assert "Anstellungsart: Freelancer" in model.prompt
        assert "Keine spezifischen Zusatzklauseln" in model.prompt

    def test_contract_accepts_json(self):
        """Test the JSON answer form."""
        model = FakeModel('{"contractMarkdown": "# Arbeitsvertrag"}')
        result = asyncio.run(DraftingAgent(generate=model).generate_contract(
            _contract_request(employment_type=EmploymentType.FULL_TIME, vacation_days=30)
        ))
        assert result.contract_markdown == "# Arbeitsvertrag"
        assert "Urlaubsanspruch: 30 Tage" in model.prompt

    def test_contract_dates_must_be_ordered(self):
        """Test that a contract cannot end before it starts."""
        with pytest.raises(ValueError, match="end date"):
            _contract_request(end_date=date(2024, 6, 30))
