# ev_admin_system/business_logic/party_id.py

import logging
import re
import string
from typing import Iterable

from ev_admin_system.business_logic.errors import BusinessRuleError

logger = logging.getLogger(__name__)

SEED_LENGTH = 2

# Third characters tried once the name itself is used up.
FALLBACK_CHARACTERS = string.digits[1:] + string.ascii_uppercase


def normalize_company_name(company_name: str) -> str:
    """Uppercase the name and drop all whitespace."""
    return re.sub(r"\s+", "", str(company_name or "")).upper()


class PartyIDGenerator:
    """
    Derives a short party identifier from a company name.

    The first two characters of the normalized name are the seed. Each later
    character is tried in turn as a third character; the first combination
    nobody holds yet wins. When the name runs out of characters the seed is
    completed with 1-9 and then A-Z instead, so the id is never longer than three
    characters and never collides with an issued one.
    """

    def __init__(self, merchant_repo):
        self.merchant_repo = merchant_repo

    def generate(self, company_name: str) -> str:
        return self.generate_from(company_name, self.merchant_repo.get_party_ids())

    @staticmethod
    def generate_from(company_name: str, issued: Iterable[str]) -> str:
        """
        Args:
            company_name: Name of the company the id is for
            issued: Party ids already in use

        Returns:
            A party id not present in issued

        Raises:
            BusinessRuleError: If the name is empty once whitespace is removed
                (INVALID_COMPANY_NAME) or every three character id for the seed
                is taken (PARTY_ID_NOT_AVAILABLE)
        """
        name = normalize_company_name(company_name)
        if not name:
            raise BusinessRuleError("INVALID_COMPANY_NAME")

        issued = set(issued)
        seed = name[:SEED_LENGTH]

        for char in name[SEED_LENGTH:]:
            candidate = seed + char
            if candidate not in issued:
                return candidate

        for char in FALLBACK_CHARACTERS:
            candidate = seed + char
            if candidate not in issued:
                logger.info(f"Party id for '{company_name}' fell back to: {candidate}")
                return candidate

        logger.warning(f"No party id left for seed '{seed}' of '{company_name}'")
        raise BusinessRuleError("PARTY_ID_NOT_AVAILABLE")
