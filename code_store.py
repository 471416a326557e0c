"""
In-memory store of opaque navigation codes.

Every code maps to one CodeRecord until it expires (CODE_EXPIRY_SECONDS after
creation) or is swept. A secondary user_id -> code index tracks the most
recent code per authenticated user. State lives only in process memory and is
lost on restart; it is not shared between processes.
"""
import re
import secrets
import time
import uuid
import logging
from dataclasses import dataclass
from typing import Callable, Dict, Optional

import config
from fingerprint import FingerprintProvider, current_fingerprint

logger = logging.getLogger("secure_routing.code_store")

# Characters that could break out of an attribute or inject markup.
UNSAFE_CODE_CHARS = re.compile(r"[<>'\"&]")


@dataclass
class CodeRecord:
    session_id: str
    code: str
    timestamp: float
    fingerprint: str
    user_id: Optional[str] = None


def sanitize_code(code: str) -> str:
    """Strips markup-sensitive characters from a generated code."""
    return UNSAFE_CODE_CHARS.sub("", code)


class CodeStore:
    """Generates, validates and expires per-navigation codes."""

    def __init__(
        self,
        expiry_seconds: float = config.CODE_EXPIRY_SECONDS,
        code_length: int = config.CODE_LENGTH,
        alphabet: str = config.ALLOWED_CHARS,
        fingerprint: FingerprintProvider = current_fingerprint,
        clock: Callable[[], float] = time.time,
    ):
        self.expiry_seconds = expiry_seconds
        self.code_length = code_length
        self.alphabet = alphabet
        self._fingerprint = fingerprint
        self._clock = clock
        self._records: Dict[str, CodeRecord] = {}
        self._user_codes: Dict[str, str] = {}

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, code: str) -> bool:
        return code in self._records

    def get(self, code: str) -> Optional[CodeRecord]:
        return self._records.get(code)

    def code_for_user(self, user_id: str) -> Optional[str]:
        return self._user_codes.get(user_id)

    def _age(self, record: CodeRecord) -> float:
        return self._clock() - record.timestamp

    def _forget(self, code: str, record: CodeRecord) -> None:
        self._records.pop(code, None)
        # Leave the index alone if the user has since been issued a newer code.
        if record.user_id and self._user_codes.get(record.user_id) == code:
            del self._user_codes[record.user_id]

    def generate_code(self, user_id: Optional[str] = None) -> str:
        """Mints a fresh code, records it and points the user index at it."""
        code = "".join(secrets.choice(self.alphabet) for _ in range(self.code_length))
        code = sanitize_code(code)

        self._records[code] = CodeRecord(
            session_id=str(uuid.uuid4()),
            code=code,
            timestamp=self._clock(),
            fingerprint=self._fingerprint(),
            user_id=user_id,
        )
        if user_id:
            self._user_codes[user_id] = code

        return code

    def get_current_or_new_code(self, user_id: Optional[str] = None) -> str:
        """Reuses the user's indexed code while it is fresh, otherwise mints one."""
        if user_id and user_id in self._user_codes:
            code = self._user_codes[user_id]
            record = self._records.get(code)
            if record and self._age(record) < self.expiry_seconds:
                return code

        return self.generate_code(user_id)

    def validate(self, code: str, user_id: Optional[str] = None) -> bool:
        """
        Checks a code against expiry, owner and device fingerprint.

        An expired code is removed (with its user index entry) as a side
        effect. Never raises.
        """
        record = self._records.get(code)
        if record is None:
            return False

        if self._age(record) > self.expiry_seconds:
            self._forget(code, record)
            return False

        if user_id and record.user_id != user_id:
            return False

        if record.fingerprint != self._fingerprint():
            return False

        return True

    def sweep_expired(self) -> int:
        """Deletes every expired record. Returns the number removed."""
        expired = [
            (code, record) for code, record in self._records.items()
            if self._age(record) > self.expiry_seconds
        ]
        for code, record in expired:
            self._forget(code, record)

        if expired:
            logger.info(f"Sweep: removed {len(expired)} expired codes")
        return len(expired)

    def clear(self) -> None:
        self._records.clear()
        self._user_codes.clear()
