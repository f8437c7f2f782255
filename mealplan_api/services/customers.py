"""
Customer lookup by plan token.

Every plan request starts here: the token from the emailed link is looked up
in the Meal URL table. The nutrition profile lives in the Client table and is
found by the email embedded in the customer's nutrition identifier
("Name | Meal | email").

Allergy and diet restrictions are linked ids, on the profile and on each
order line. Their names come from the Allergies Diet table in one batched
lookup per request.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional

from .. import config, fields as f
from ..domain import as_float, as_id_list, as_int, as_text
from ..exceptions import ExternalStoreError, NotFoundError
from ..store import Eq, Record, RecordIdIn, RecordStore, StoreError

logger = logging.getLogger(__name__)


@dataclass
class Customer:
    record_id: str
    token: str
    name: str
    email: Optional[str] = None
    client_identifier: Optional[str] = None

    @property
    def profile_email(self) -> Optional[str]:
        """Email from the identifier, falling back to the record's email."""
        return email_from_identifier(self.client_identifier) or self.email


def email_from_identifier(identifier: Optional[str]) -> Optional[str]:
    if not identifier or "|" not in identifier:
        return None
    parts = [part.strip() for part in identifier.split("|")]
    if len(parts) >= 3 and parts[2]:
        return parts[2]
    return None


def get_customer(store: RecordStore, token: str) -> Customer:
    """
    Resolve a plan token.

    Raises:
        NotFoundError: no customer has this token
        ExternalStoreError: the lookup itself failed
    """
    if not token:
        raise NotFoundError("Customer not found")
    try:
        record = store.first(f.CUSTOMERS_TABLE, Eq(f.CUSTOMER_TOKEN, token))
    except StoreError as e:
        logger.error("Customer lookup failed: %s", e)
        raise ExternalStoreError("Could not load customer", details=str(e)) from e

    if record is None:
        logger.debug("No customer for token %s", token)
        raise NotFoundError("Customer not found")

    return Customer(
        record_id=record.id,
        token=token,
        name=as_text(record.fields.get(f.CUSTOMER_NAME)) or "",
        email=as_text(record.fields.get(f.CUSTOMER_EMAIL)),
        client_identifier=as_text(record.fields.get(f.CUSTOMER_CLIENT_IDENTIFIER)),
    )


def empty_goals() -> Dict[str, Any]:
    return {
        "calories": 0,
        "carbs": 0,
        "protein": 0,
        "fat": 0,
        "fiber": 0,
        "allergies": [],
        "notes": "",
        "snacksPerDay": 0,
    }


def find_nutrition_profile(store: RecordStore, customer: Customer) -> Optional[Record]:
    """The customer's first Client profile, or None when it cannot be found."""
    email = customer.profile_email
    if not email:
        logger.warning("Customer %s has no email to find a nutrition profile", customer.record_id)
        return None

    try:
        profile = store.first(f.CLIENTS_TABLE, Eq(f.CLIENT_EMAIL, email))
    except StoreError as e:
        logger.warning("Nutrition profile lookup failed, using zero goals: %s", e)
        return None

    if profile is None:
        logger.info("No nutrition profile for customer %s", customer.record_id)
    return profile


def profile_allergy_ids(profile: Optional[Record]) -> List[str]:
    if profile is None:
        return []
    return as_id_list(profile.fields.get(f.CLIENT_ALLERGIES))


def resolve_allergy_names(
    store: RecordStore,
    ids: Iterable[str],
    batch_size: Optional[int] = None,
) -> Dict[str, str]:
    """
    Display names for allergy and diet restriction ids.

    Ids are looked up in batched queries against the Allergies Diet table. A
    failed batch is logged and its ids stay unresolved; callers show the raw
    id for those.

    Args:
        store: Record store holding the Allergies Diet table
        ids: Allergy record ids (duplicates and blanks are ignored)
        batch_size: Ids per lookup round trip

    Returns:
        Dict of id -> name for every id that resolved
    """
    wanted = [i for i in dict.fromkeys(ids) if i]
    batch_size = batch_size or config.INGREDIENT_BATCH_SIZE
    names: Dict[str, str] = {}
    for start in range(0, len(wanted), batch_size):
        chunk = wanted[start:start + batch_size]
        try:
            records = store.list(f.ALLERGIES_TABLE, RecordIdIn(chunk))
        except StoreError as e:
            logger.warning("Allergy lookup failed for %d ids, showing raw ids: %s", len(chunk), e)
            continue
        for record in records:
            names[record.id] = as_text(record.fields.get(f.ALLERGY_NAME)) or "Unknown"
    return names


def allergy_labels(ids: Iterable[str], names: Dict[str, str]) -> List[str]:
    return [names.get(i, i) for i in ids if i]


def nutrition_goals(profile: Optional[Record], allergy_names: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
    """Goals dict for a Client profile; no profile yields zero goals."""
    if profile is None:
        return empty_goals()

    data = profile.fields
    return {
        "calories": as_float(data.get(f.CLIENT_GOAL_CALORIES)),
        "carbs": as_float(data.get(f.CLIENT_GOAL_CARBS)),
        "protein": as_float(data.get(f.CLIENT_GOAL_PROTEIN)),
        "fat": as_float(data.get(f.CLIENT_GOAL_FAT)),
        "fiber": as_float(data.get(f.CLIENT_GOAL_FIBER)),
        "allergies": allergy_labels(profile_allergy_ids(profile), allergy_names or {}),
        "notes": data.get(f.CLIENT_NOTES) or "",
        "snacksPerDay": as_int(data.get(f.CLIENT_SNACKS_PER_DAY)),
    }
