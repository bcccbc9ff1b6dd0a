"""
AI Agents for Finboard

Each flow is a single-shot template fill: build a prompt from a typed
request, call the model once, validate the answer against a typed
response. There is no tool use, no memory and no multi-step planning.

CRITICAL BOUNDARIES:

1. The model call is injected (`generate`). Agents never configure a
   client themselves, so the prompt code is testable without network.
2. Model output is untrusted. It is parsed and validated; anything that
   does not fit the response schema raises AgentResponseError.
3. Agents never mutate ledgers or schedules. They only read the data
   they are handed.

All prompts are German and state the currency (Euro), matching the
dashboard's audience.
"""

import json
from typing import Optional, Type, TypeVar

import structlog
from dateutil.relativedelta import relativedelta
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from finboard.agents.client import GeminiClient, GenerateFn, InlineMedia
from finboard.agents.schemas import (
    CategorizationRequest,
    CategorizationResponse,
    ContractRequest,
    ContractResponse,
    DocumentScanRequest,
    DocumentScanResponse,
    FinBotRequest,
    FinBotResponse,
    ForecastRequest,
    ForecastResponse,
    QuoteRequest,
    QuoteResponse,
    SavingsSuggestionsRequest,
    SavingsSuggestionsResponse,
)
from finboard.audit.logger import AuditLogger
from finboard.money import format_currency
from finboard.schedule.projector import monthly_overview, occurrences_between


logger = structlog.get_logger(__name__)

ResponseT = TypeVar("ResponseT", bound=BaseModel)

DEFAULT_CATEGORIES = [
    "Lebensmittel", "Transport", "Wohnen", "Unterhaltung",
    "Gesundheit", "Einkommen", "Shopping", "Sonstiges",
]


class AgentError(Exception):
    """Base exception for AI flow failures."""
    pass


class AgentResponseError(AgentError):
    """The model answered, but not in the required shape."""

    def __init__(self, flow: str, message: str, raw_response: str = ""):
        super().__init__(f"{flow}: {message}")
        self.flow = flow
        self.raw_response = raw_response


class ModelCallError(AgentError):
    """The model could not be reached or refused to answer."""
    pass


def extract_json(text: str) -> dict:
    """
    Pull the first top-level JSON object out of a model response.

    Models like to wrap JSON in prose or ```json fences; everything
    outside the outermost braces is ignored.
    """
    start = text.find("{")
    end = text.rfind("}") + 1
    if start < 0 or end <= start:
        raise ValueError("No JSON object in response")
    data = json.loads(text[start:end])
    if not isinstance(data, dict):
        raise ValueError("Response JSON is not an object")
    return data


class _BaseAgent:
    """Shared plumbing: call the model, log failures, validate answers."""

    def __init__(
        self,
        generate: Optional[GenerateFn] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._generate = generate or GeminiClient()
        self._audit_logger = audit_logger

    async def _call(
        self,
        flow: str,
        prompt: str,
        media: Optional[InlineMedia] = None,
    ) -> str:
        try:
            text = await self._generate(prompt, media)
        except Exception as e:
            logger.warning("model_call_failed", flow=flow, error=str(e))
            if self._audit_logger is not None:
                self._audit_logger.log_external_service_error(
                    service=f"model:{flow}",
                    error_message=str(e),
                )
            raise ModelCallError(f"{flow}: {e}") from e

        if not text or not text.strip():
            raise AgentResponseError(flow, "Empty response from model")
        return text

    def _parse(
        self,
        flow: str,
        text: str,
        response_model: Type[ResponseT],
    ) -> ResponseT:
        try:
            return response_model.model_validate(extract_json(text))
        except (ValueError, PydanticValidationError) as e:
            raise AgentResponseError(flow, str(e), raw_response=text) from e


class BookkeepingAgent(_BaseAgent):
    """
    AI agent for booking transactions.

    RESPONSIBILITIES:
    - Suggest a category for a transaction description
    - Extract amount, merchant, date and category from a receipt photo

    BOUNDARIES:
    - NEVER books anything; the user confirms every suggestion
    """

    async def categorize(self, request: CategorizationRequest) -> CategorizationResponse:
        """Suggest the best category for one transaction."""
        lines = [f"Transaktionsbeschreibung: {request.text}"]
        if request.merchant:
            lines.append(f"Händler: {request.merchant}")
        if request.amount is not None:
            lines.append(f"Betrag: {format_currency(request.amount)}")
        if request.time:
            lines.append(f"Zeitpunkt: {request.time}")

        if request.user_categories:
            categories = "\n".join(f"- {c}" for c in request.user_categories)
            category_hint = (
                "Hier sind die Kategorien, die der Benutzer bereits verwendet. "
                "Versuchen Sie, eine dieser Kategorien zuzuordnen, wenn sie passt:\n"
                f"{categories}"
            )
        else:
            category_hint = (
                "Hier sind einige Beispielkategorien, die Sie verwenden können: "
                + ", ".join(DEFAULT_CATEGORIES) + "."
            )

        prompt = f"""Sie sind ein Experte für persönliche Finanzen. Ihre Aufgabe ist es, eine Transaktion basierend auf der Beschreibung zu kategorisieren.
Die Währung ist Euro (€).

{chr(10).join(lines)}

{category_hint}

Analysieren Sie die Beschreibung und geben Sie die am besten passende Kategorie zurück. Wenn keine der vorhandenen Kategorien gut passt, können Sie eine neue, sinnvolle Kategorie vorschlagen.
Antworten Sie ausschließlich mit einem JSON-Objekt in genau diesem Format:
{{"category": "Kategorie", "confidence": 0.8}}"""

        text = await self._call("categorization", prompt)
        return self._parse("categorization", text, CategorizationResponse)

    async def scan_document(self, request: DocumentScanRequest) -> DocumentScanResponse:
        """Read the key fields off a receipt or invoice image."""
        try:
            media = InlineMedia.from_data_uri(request.photo_data_uri)
        except ValueError as e:
            raise AgentError(f"document_scan: {e}") from e

        prompt = """Sie sind ein erfahrener Finanzassistent, spezialisiert auf die Extraktion von Informationen aus Belegen und Rechnungen. Währung ist Euro (€).

Sie erhalten ein Bild eines Dokuments, und Ihre Aufgabe ist es, folgende Informationen zu extrahieren:
- Der Gesamtbetrag auf dem Beleg oder der Rechnung.
- Der Name des Händlers.
- Das Datum auf dem Beleg oder der Rechnung (ISO-Format).
- Die am besten geeignete Ausgabenkategorie für die Transaktion (z. B. Fixkosten, Freizeit, Geschäftlich, Bildung).

Antworten Sie ausschließlich mit einem JSON-Objekt in genau diesem Format:
{"amount": 12.34, "merchant": "Händler", "date": "2024-01-31", "category": "Kategorie"}"""

        text = await self._call("document_scan", prompt, media)
        return self._parse("document_scan", text, DocumentScanResponse)


class AdvisorAgent(_BaseAgent):
    """
    AI agent for financial advice.

    RESPONSIBILITIES:
    - Forecast next month's balance from history and recurring payments
    - Suggest where to save money
    - Answer free-form questions about the user's own data

    The schedule facts in the forecast prompt (upcoming payments,
    monthly totals) are computed deterministically before the model
    sees them.
    """

    async def forecast_cash_flow(self, request: ForecastRequest) -> ForecastResponse:
        """Project the balance one month ahead and name risks and suggestions."""
        horizon_end = request.as_of + relativedelta(months=1)
        upcoming = []
        for transaction in request.recurring_transactions:
            for due in occurrences_between(
                transaction.start_date,
                transaction.frequency,
                request.as_of + relativedelta(days=1),
                horizon_end,
            ):
                upcoming.append({
                    "date": due.isoformat(),
                    "description": transaction.description,
                    "amount": str(transaction.amount),
                })
        upcoming.sort(key=lambda item: item["date"])
        overview = monthly_overview(request.recurring_transactions)

        recurring = [
            {
                "description": t.description,
                "category": t.category,
                "amount": str(t.amount),
                "frequency": t.frequency.value,
                "start_date": t.start_date.isoformat(),
            }
            for t in request.recurring_transactions
        ]

        prompt = f"""Sie sind ein persönlicher Finanzberater. Analysieren Sie die Finanzdaten des Benutzers und erstellen Sie eine Prognose seines Cashflows für den nächsten Monat. Die Währung ist Euro (€).

Stichtag: {request.as_of.isoformat()}
Historische Transaktionen: {json.dumps(request.historical_transactions, default=str, ensure_ascii=False)}
Wiederkehrende Transaktionen: {json.dumps(recurring, ensure_ascii=False)}
Fällige wiederkehrende Zahlungen bis {horizon_end.isoformat()}: {json.dumps(upcoming, ensure_ascii=False)}
Monatliche Einnahmen (normalisiert): {overview.income:.2f}
Monatliche Ausgaben (normalisiert): {overview.expenses:.2f}
Aktueller Kontostand: {request.current_balance}

Berechnen Sie auf Basis dieser Informationen den prognostizierten Kontostand nach einem Monat. Identifizieren Sie mögliche finanzielle Risiken und geben Sie Vorschläge zur Verbesserung der finanziellen Gesundheit.

Antworten Sie ausschließlich mit einem JSON-Objekt in genau diesem Format:
{{"projected_balance": 1234.56, "potential_risks": "...", "suggestions": "..."}}"""

        text = await self._call("cash_flow_forecast", prompt)
        return self._parse("cash_flow_forecast", text, ForecastResponse)

    async def suggest_savings(self, request: SavingsSuggestionsRequest) -> SavingsSuggestionsResponse:
        """Personalized cost-cutting suggestions per spending category."""
        prompt = f"""Sie sind ein persönlicher Finanzberater. Geben Sie basierend auf den Ausgabendaten und finanziellen Zielen des Benutzers personalisierte Vorschläge zur Kostenersparnis. Die Währung ist Euro (€).

Ausgabendaten: {request.spending_data}
Finanzielle Ziele: {request.financial_goals}

Stellen Sie eine Liste von Vorschlägen mit Kategorie, Vorschlag und geschätzten Einsparungen bereit.

Antworten Sie ausschließlich mit einem JSON-Objekt in genau diesem Format:
{{"suggestions": [{{"category": "...", "suggestion": "...", "estimated_savings": "ca. 20 €"}}]}}"""

        text = await self._call("savings_suggestions", prompt)
        return self._parse("savings_suggestions", text, SavingsSuggestionsResponse)

    async def ask(self, request: FinBotRequest) -> FinBotResponse:
        """
        Answer a question from the user's financial data.

        The answer is free text, so no JSON is required.
        """
        prompt = f"""Sie sind ein Finanzassistent-Bot. Verwenden Sie die Finanzdaten des Benutzers, um seine Frage zu beantworten. Die Währung ist Euro (€).
Verwenden Sie ausschließlich die angegebenen Daten.

Frage: {request.question}
Finanzdaten: {json.dumps(request.financial_data, default=str, ensure_ascii=False)}

Antwort:"""

        text = await self._call("finbot", prompt)
        return FinBotResponse(answer=text.strip())


class DraftingAgent(_BaseAgent):
    """
    AI agent for business documents: quotes and employment contracts.

    Drafts are proposals. The user edits and sends them; nothing here
    is stored.
    """

    async def generate_quote(self, request: QuoteRequest) -> QuoteResponse:
        """Draft a cost estimate for a content-creation project."""
        if request.cost_items:
            items = "\n".join(f"- {item.name}: {item.value}€" for item in request.cost_items)
            basis = (
                "Verwende bei der Kalkulation vorrangig die folgenden vom Benutzer definierten Kostenstellen:\n"
                f"{items}\n"
                "Falls eine relevante Kostenstelle nicht vom Benutzer definiert wurde, nutze deine Standardannahmen."
            )
        else:
            basis = """Deine Standard-Kalkulationsgrundlagen sind:
- Tagessatz als Content Creator: 800€.
- Reisekosten: 0,50€ pro Kilometer, wenn die Anreise über 50km beträgt. Schätze die Entfernung basierend auf dem Ort.
- Unterkunftspauschale: 150€ pro Nacht (Anzahl der Tage - 1), falls keine Unterkunft gestellt wird.
- Nachbearbeitung (Schnitt, Color Grading, etc.): pauschal mit 25% des Gesamttagessatzes."""

        prompt = f"""Du bist ein erfahrener Producer für Content Creation und deine Aufgabe ist es, einen professionellen Kostenvoranschlag zu erstellen.
Die Währung ist Euro (€). Berücksichtige alle Aspekte des Projekts.

Hier sind die Projektdetails:
- Projektbeschreibung: {request.project_description}
- Ort: {request.location}
- Arbeitstage: {request.days}
- Art der Arbeit: {request.work_type}
- Ergebnisse: {request.deliverables}
- Unterkunft wird gestellt: {'Ja' if request.accommodation_provided else 'Nein'}

{basis}

Erstelle eine Liste von Posten, einen Gesamttitel, den Gesamtbetrag und füge hilfreiche Anmerkungen hinzu, z.B. "Gültig für 14 Tage. 50% Anzahlung bei Auftragserteilung."
Antworte ausschließlich mit einem JSON-Objekt in genau diesem Format:
{{"quote_title": "...", "line_items": [{{"item": "...", "details": "...", "amount": 800.0}}], "total_amount": 800.0, "notes": "..."}}"""

        text = await self._call("quote", prompt)
        quote = self._parse("quote", text, QuoteResponse)
        if not quote.is_consistent:
            logger.warning(
                "quote_total_mismatch",
                total=str(quote.total_amount),
                line_total=str(quote.line_total),
            )
        return quote

    async def generate_contract(self, request: ContractRequest) -> ContractResponse:
        """
        Draft an employment or freelance contract in Markdown.

        The model may answer with bare Markdown instead of JSON; that is
        accepted as the contract text.
        """
        details = [
            f"- Position: {request.position}",
            f"- Anstellungsart: {request.employment_type.value}",
            f"- Beginn des Vertrags: {request.start_date.isoformat()}",
        ]
        if request.end_date:
            details.append(f"- Befristet bis: {request.end_date.isoformat()}")
        details.append(f"- Gehalt: {request.salary}€ ({request.salary_type.value})")
        if request.weekly_hours:
            details.append(f"- Wöchentliche Arbeitszeit: {request.weekly_hours} Stunden")
        if request.vacation_days:
            details.append(f"- Urlaubsanspruch: {request.vacation_days} Tage pro Jahr")
        if request.probation_period_months:
            details.append(f"- Probezeit: {request.probation_period_months} Monate")

        clauses = (
            f"- {request.custom_clauses}" if request.custom_clauses
            else "- Keine spezifischen Zusatzklauseln angegeben."
        )

        prompt = f"""Du bist ein Experte für deutsches Arbeitsrecht und deine Aufgabe ist es, einen professionellen Vertragsentwurf zu erstellen.
Die Währung ist Euro (€). Der Vertrag sollte klar strukturiert und formell sein.

Basierend auf den folgenden Informationen, erstelle einen umfassenden Vertragsentwurf im Markdown-Format.

**Parteien:**
- Arbeitnehmer/Freelancer: {request.personnel_name}, wohnhaft {request.personnel_address}
- Arbeitgeber: {request.company_name}, ansässig in {request.company_address}

**Vertragsdetails:**
{chr(10).join(details)}

**Zusätzliche Klauseln:**
{clauses}

Erstelle einen vollständigen Vertragsentwurf, der Standardklauseln wie Tätigkeit, Arbeitszeit, Vergütung, Urlaub, Kündigungsfristen, Verschwiegenheitspflicht und Schlussbestimmungen enthält. Passe die Klauseln an die angegebene Anstellungsart (z.B. Freelancer vs. Festanstellung) an.
Antworte ausschließlich mit dem Vertragstext in Markdown."""

        text = await self._call("contract", prompt)
        try:
            return self._parse("contract", text, ContractResponse)
        except AgentResponseError:
            return ContractResponse(contract_markdown=text.strip())
