"""Claim record persistence used by the carrier service."""

import json
import logging
import os
import tempfile
from abc import ABC, abstractmethod
from dataclasses import replace
from pathlib import Path
from typing import Any, Dict, List, Optional

from ..models.records import ActivityRecord, ClaimRecord, IntelRecord
from ..models.status import TERMINAL_INTERNAL_STATUSES

logger = logging.getLogger(__name__)

_TERMINAL_VALUES = {status.value for status in TERMINAL_INTERNAL_STATUSES}


class ClaimStore(ABC):
    """
    Persistence boundary for claim records and the side-records written
    during filing and sync (intel items and activity entries).
    """

    @abstractmethod
    async def get_claim(self, claim_id: str) -> Optional[ClaimRecord]:
        pass

    @abstractmethod
    async def add_claim(self, claim: ClaimRecord) -> ClaimRecord:
        pass

    @abstractmethod
    async def update_claim(self, claim_id: str, changes: Dict[str, Any]) -> ClaimRecord:
        """
        Apply a partial update to a claim record.

        Args:
            claim_id: Local claim identifier
            changes: Field name to new value; fields not listed are untouched

        Returns:
            Updated ClaimRecord

        Raises:
            KeyError: If the claim does not exist
            ValueError: If a change names an unknown field
        """
        pass

    @abstractmethod
    async def find_open_claims(self, carrier_code: str) -> List[ClaimRecord]:
        """Claims for a carrier that are filed and not closed or denied."""
        pass

    @abstractmethod
    async def find_by_carrier_reference(
        self,
        carrier_claim_id: Optional[str] = None,
        claim_number: Optional[str] = None
    ) -> Optional[ClaimRecord]:
        pass

    @abstractmethod
    async def create_intel(self, intel: IntelRecord) -> IntelRecord:
        pass

    @abstractmethod
    async def create_activity(self, activity: ActivityRecord) -> ActivityRecord:
        pass

    @abstractmethod
    async def list_intel(self, source_id: Optional[str] = None) -> List[IntelRecord]:
        pass

    @abstractmethod
    async def list_activities(self, entity_id: Optional[str] = None) -> List[ActivityRecord]:
        pass


class InMemoryClaimStore(ClaimStore):
    """Dictionary-backed store used in development and tests."""

    def __init__(self, claims: Optional[List[ClaimRecord]] = None):
        self._claims: Dict[str, ClaimRecord] = {}
        self._intel: List[IntelRecord] = []
        self._activities: List[ActivityRecord] = []
        for claim in claims or []:
            self._claims[claim.id] = claim

    async def get_claim(self, claim_id: str) -> Optional[ClaimRecord]:
        claim = self._claims.get(claim_id)
        # Callers get a copy so unsaved edits never leak into the store
        return replace(claim) if claim else None

    async def add_claim(self, claim: ClaimRecord) -> ClaimRecord:
        previous = self._claims.get(claim.id)
        self._claims[claim.id] = replace(claim)
        try:
            self._on_change()
        except Exception:
            if previous is None:
                del self._claims[claim.id]
            else:
                self._claims[claim.id] = previous
            raise
        return replace(claim)

    async def update_claim(self, claim_id: str, changes: Dict[str, Any]) -> ClaimRecord:
        if claim_id not in self._claims:
            raise KeyError(claim_id)

        unknown = set(changes) - ClaimRecord.field_names()
        if unknown:
            raise ValueError(f"Unknown claim fields: {sorted(unknown)}")

        previous = self._claims[claim_id]
        updated = replace(previous, **changes)
        self._claims[claim_id] = updated
        try:
            self._on_change()
        except Exception:
            # A failed save must not leave the change visible
            self._claims[claim_id] = previous
            raise
        return replace(updated)

    async def find_open_claims(self, carrier_code: str) -> List[ClaimRecord]:
        return [
            replace(claim)
            for claim in self._claims.values()
            if claim.carrier == carrier_code
            and claim.is_filed_with_carrier
            and claim.status not in _TERMINAL_VALUES
        ]

    async def find_by_carrier_reference(
        self,
        carrier_claim_id: Optional[str] = None,
        claim_number: Optional[str] = None
    ) -> Optional[ClaimRecord]:
        for claim in self._claims.values():
            if carrier_claim_id and claim.carrier_claim_id == carrier_claim_id:
                return replace(claim)
            if claim_number and claim.claim_number == claim_number:
                return replace(claim)
        return None

    async def create_intel(self, intel: IntelRecord) -> IntelRecord:
        self._intel.append(intel)
        try:
            self._on_change()
        except Exception:
            self._intel.pop()
            raise
        return intel

    async def create_activity(self, activity: ActivityRecord) -> ActivityRecord:
        self._activities.append(activity)
        try:
            self._on_change()
        except Exception:
            self._activities.pop()
            raise
        return activity

    async def list_intel(self, source_id: Optional[str] = None) -> List[IntelRecord]:
        return [item for item in self._intel if source_id is None or item.source_id == source_id]

    async def list_activities(self, entity_id: Optional[str] = None) -> List[ActivityRecord]:
        return [item for item in self._activities if entity_id is None or item.entity_id == entity_id]

    def _on_change(self) -> None:
        """
        Hook called after every mutation.

        If it raises, the mutation is undone before the error propagates.
        """
        pass


class JsonFileClaimStore(InMemoryClaimStore):
    """
    Claim store persisted to a single JSON document.

    The whole document is rewritten after every mutation via a temporary
    file and an atomic rename, so a crash never leaves a half-written file.
    """

    def __init__(self, path: str):
        """
        Initialize JsonFileClaimStore.

        Args:
            path: JSON file holding claims, intel and activities (created
                on first write if missing)
        """
        super().__init__()
        self.path = Path(path)
        self._load()

        logger.info(
            f"Initialized JsonFileClaimStore: path={self.path}, "
            f"claims={len(self._claims)}"
        )

    def _load(self) -> None:
        if not self.path.exists():
            return

        with open(self.path, 'r', encoding='utf-8') as f:
            data = json.load(f)

        self._claims = {
            item["id"]: ClaimRecord.from_dict(item)
            for item in data.get("claims", [])
        }
        self._intel = [IntelRecord.from_dict(item) for item in data.get("intel", [])]
        self._activities = [ActivityRecord.from_dict(item) for item in data.get("activities", [])]

    def _on_change(self) -> None:
        data = {
            "claims": [claim.to_dict() for claim in self._claims.values()],
            "intel": [item.to_dict() for item in self._intel],
            "activities": [item.to_dict() for item in self._activities],
        }

        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=str(self.path.parent), suffix=".tmp")
        try:
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                json.dump(data, f, indent=2)
            os.replace(tmp_path, self.path)
        except OSError as e:
            logger.error(f"Failed to write claim store {self.path}: {str(e)}")
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise

        logger.debug(f"Saved claim store: {self.path}")
