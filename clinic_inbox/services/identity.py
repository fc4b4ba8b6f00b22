"""Phone-to-identity resolution over a snapshot of clients and leads."""

from collections.abc import Iterable
from dataclasses import dataclass

from clinic_inbox.core.phone import normalize_phone
from clinic_inbox.models import Client, Lead, LeadStatus
from clinic_inbox.schemas.conversation import ConversationType


@dataclass(frozen=True)
class Resolution:
    """Result of resolving one normalized phone."""

    client: Client | None = None
    lead: Lead | None = None

    @property
    def type(self) -> ConversationType:
        if self.client is not None:
            return ConversationType.CLIENT
        if self.lead is not None:
            return ConversationType.LEAD
        return ConversationType.UNKNOWN

    def display_name(self, fallback: str) -> str:
        if self.client is not None:
            return client_name(self.client) or fallback
        if self.lead is not None:
            return lead_name(self.lead) or fallback
        return fallback


def client_name(client: Client) -> str:
    return f"{client.first_name or ''} {client.last_name or ''}".strip()


def lead_name(lead: Lead) -> str:
    if lead.last_name:
        return f"{lead.first_name} {lead.last_name}".strip()
    return (lead.first_name or "").strip()


def is_open_lead(lead: Lead) -> bool:
    return lead.status != LeadStatus.CONVERTED.value


class IdentityResolver:
    """Exact-match lookup from normalized phone to client and lead.

    The maps are built once per snapshot; resolving is a dict lookup. A
    client's primary phone is indexed before any secondary phone, and the
    first record to claim a key keeps it.
    """

    def __init__(self, clients: Iterable[Client], leads: Iterable[Lead]):
        self.clients = list(clients)
        self.leads = [lead for lead in leads if is_open_lead(lead)]
        self.clients_by_id = {str(client.id): client for client in self.clients}
        self.leads_by_id = {str(lead.id): lead for lead in self.leads}
        self._phone_to_client: dict[str, Client] = {}
        self._phone_to_lead: dict[str, Lead] = {}

        for client in self.clients:
            self._index(self._phone_to_client, client.phone_primary, client)
        for client in self.clients:
            self._index(self._phone_to_client, client.phone_secondary, client)
        for lead in self.leads:
            self._index(self._phone_to_lead, lead.phone, lead)

    @staticmethod
    def _index(mapping: dict, phone: str | None, record) -> None:
        key = normalize_phone(phone)
        if key:
            mapping.setdefault(key, record)

    def resolve(self, normalized_phone: str) -> Resolution:
        """Resolve an already-normalized phone. Empty keys resolve to unknown."""
        if not normalized_phone:
            return Resolution()
        return Resolution(
            client=self._phone_to_client.get(normalized_phone),
            lead=self._phone_to_lead.get(normalized_phone),
        )

    def resolve_phone(self, phone: str | None) -> Resolution:
        return self.resolve(normalize_phone(phone))

    def client_phone(self, client_id: str | None) -> str | None:
        client = self.clients_by_id.get(client_id) if client_id else None
        if client is None:
            return None
        return client.phone_primary or client.phone_secondary

    def lead_phone(self, lead_id: str | None) -> str | None:
        lead = self.leads_by_id.get(lead_id) if lead_id else None
        return lead.phone if lead is not None else None
