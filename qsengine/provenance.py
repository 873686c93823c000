# -*- coding: utf-8 -*-
"""
Scoring Provenance

SHA-256 fingerprints for rulesets, answer sets and assessment results,
plus an optional caller-owned tracker that chains scoring runs into a
tamper-evident audit log.

Hash stability rules:
    - JSON keys sorted, compact separators, ASCII only
    - Answer sets hashed in question-code order
    - No timestamps inside fingerprints, so identical inputs always
      produce identical hashes

Example:
    >>> from qsengine.provenance import ProvenanceTracker, ruleset_fingerprint
    >>> fp = ruleset_fingerprint(ruleset)
    >>> tracker = ProvenanceTracker()
    >>> record_id = tracker.record_scoring(result)
    >>> tracker.verify_chain()
    True

Author: Questionnaire Platform Team
Date: October 2026
Status: Production Ready
"""

from __future__ import annotations

import hashlib
import json
import logging
from typing import Any, Dict, List, Mapping, Optional

from qsengine.models import Answer, AssessmentResult, Ruleset, ScoringRecord

logger = logging.getLogger(__name__)


def canonical_json(data: Any) -> str:
    """Serialize ``data`` to the canonical JSON form used for hashing."""
    return json.dumps(
        data,
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=True,
        default=str,
    )


def compute_hash(data: Any) -> str:
    """Hex SHA-256 of the canonical JSON form of ``data``."""
    return hashlib.sha256(canonical_json(data).encode("utf-8")).hexdigest()


def ruleset_fingerprint(ruleset: Ruleset) -> str:
    """SHA-256 identifying one published ruleset version exactly."""
    return compute_hash(ruleset.model_dump(mode="json"))


def answers_fingerprint(answers: Mapping[str, Answer]) -> str:
    """SHA-256 of an answer set, independent of answer order."""
    return compute_hash({
        code: answers[code].model_dump(mode="json") for code in sorted(answers)
    })


def result_fingerprint(result: AssessmentResult) -> str:
    """SHA-256 binding a result's outputs to its input fingerprints.

    The ``provenance_hash`` field itself is excluded from the hashed data.
    """
    payload = result.model_dump(mode="json", exclude={"provenance_hash"})
    return compute_hash(payload)


class ProvenanceTracker:
    """Chains scoring runs with SHA-256 hashes for audit trails.

    The tracker is owned by the caller; the scoring engine only appends to
    a tracker it is handed.

    Attributes:
        _entries: Ordered list of scoring records.
        _last_chain_hash: Most recent chain hash for linking.
    """

    # Initial chain hash (genesis)
    _GENESIS_HASH = hashlib.sha256(b"qsengine-scoring-genesis").hexdigest()

    def __init__(self) -> None:
        """Initialize ProvenanceTracker."""
        self._entries: List[ScoringRecord] = []
        self._last_chain_hash: str = self._GENESIS_HASH
        logger.info("ProvenanceTracker initialized")

    def record_scoring(self, result: AssessmentResult) -> str:
        """Append a scoring run to the chain.

        Args:
            result: Assessment result carrying its input and output hashes.

        Returns:
            The record_id of the new entry.
        """
        record = ScoringRecord(
            ruleset_id=result.ruleset_id,
            ruleset_version=result.ruleset_version,
            ruleset_hash=result.ruleset_hash,
            answers_hash=result.answers_hash,
            result_hash=result.provenance_hash,
        )
        chain_hash = self._link(self._last_chain_hash, record)
        record.chain_hash = chain_hash

        self._entries.append(record)
        self._last_chain_hash = chain_hash

        logger.debug(
            "Recorded scoring provenance: %s v%s %s",
            record.ruleset_id, record.ruleset_version, record.record_id,
        )
        return record.record_id

    def get_audit_trail(
        self,
        ruleset_id: Optional[str] = None,
        limit: int = 100,
    ) -> List[ScoringRecord]:
        """Get the audit trail, newest first, optionally filtered by ruleset.

        Args:
            ruleset_id: Optional filter by ruleset ID.
            limit: Maximum number of entries to return.

        Returns:
            List of ScoringRecord entries.
        """
        entries = list(self._entries)
        if ruleset_id is not None:
            entries = [e for e in entries if e.ruleset_id == ruleset_id]
        entries.reverse()
        return entries[:limit]

    def verify_chain(self, entries: Optional[List[ScoringRecord]] = None) -> bool:
        """Recompute chain hashes from genesis and compare with stored ones.

        Args:
            entries: Entries to verify. Uses all entries if None.

        Returns:
            True if chain is intact, False if tampered.
        """
        check_entries = entries if entries is not None else self._entries
        current_hash = self._GENESIS_HASH

        for entry in check_entries:
            expected_hash = self._link(current_hash, entry)
            if entry.chain_hash != expected_hash:
                logger.warning(
                    "Chain verification failed at entry %s", entry.record_id,
                )
                return False
            current_hash = expected_hash

        return True

    def export_json(self) -> str:
        """Export all scoring records as a JSON string."""
        records = [entry.model_dump(mode="json") for entry in self._entries]
        return json.dumps(records, indent=2, default=str)

    @property
    def entry_count(self) -> int:
        """Return the number of provenance entries."""
        return len(self._entries)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _link(previous_hash: str, record: ScoringRecord) -> str:
        """Chain hash of ``record`` following ``previous_hash``."""
        entry_data: Dict[str, Any] = {
            "ruleset": record.ruleset_id,
            "version": record.ruleset_version,
            "ruleset_hash": record.ruleset_hash,
            "answers_hash": record.answers_hash,
            "result_hash": record.result_hash,
            "timestamp": record.timestamp.isoformat(),
        }
        combined = f"{previous_hash}:{compute_hash(entry_data)}"
        return hashlib.sha256(combined.encode("utf-8")).hexdigest()


__all__ = [
    "canonical_json",
    "compute_hash",
    "ruleset_fingerprint",
    "answers_fingerprint",
    "result_fingerprint",
    "ProvenanceTracker",
]
