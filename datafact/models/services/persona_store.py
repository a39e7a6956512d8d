"""
Persona bank lookups through a PostgREST gateway.

A filter is a flat mapping of column conditions. Numeric columns take
<column>_min / <column>_max bounds, boolean columns take a boolean (or the
strings "true"/"false"), string columns take a single value or a list.
Unknown fields and values of the wrong kind are ignored rather than rejected,
so one bad condition never blocks a lookup.
"""

from __future__ import annotations
from typing import Any, Dict, List, Optional, Tuple
import json
import logging

import httpx

from ...config import ConfigError, PersonaStoreSettings

logger = logging.getLogger(__name__)

NUMERIC_COLUMNS = frozenset({
    "usia", "jumlah_anak", "penghasilan_bulanan",
    "quality_score", "slang_level", "tingkat_ekstrovert",
    "tingkat_kepercayaan_opini", "usage_count",
})

BOOLEAN_COLUMNS = frozenset({"is_active", "eligible_basic", "eligible_pro"})

STRING_COLUMNS = frozenset({
    # identity & location
    "nama", "jenis_kelamin", "status_pernikahan",
    "domisili_provinsi", "domisili_kota", "tipe_tinggal",
    # education & work
    "pendidikan_terakhir", "jurusan_pendidikan", "pekerjaan",
    "industri_pekerjaan", "status_pekerjaan",
    # lifestyle
    "aktivitas_harian", "gaya_hidup", "kebiasaan_belanja",
    # digital & personality
    "jam_online_utama", "tech_comfort_level", "kepribadian_mbti",
    "gaya_komunikasi", "nada_jawaban_default",
    "bahasa_utama", "panjang_jawaban_preferensi",
})


class PersonaStoreError(Exception):
    pass


def normalize_filter(raw: Any) -> Dict[str, Any]:
    """Accept a mapping, a JSON-encoded mapping, or nothing."""
    if raw is None:
        return {}
    if isinstance(raw, dict):
        return raw
    if isinstance(raw, str):
        text = raw.strip()
        if not text:
            return {}
        try:
            decoded = json.loads(text)
        except json.JSONDecodeError as e:
            raise ValueError(f"filter string is not valid JSON: {e}") from e
        if isinstance(decoded, dict):
            return decoded
    raise ValueError("filter must be an object or a JSON string")


def numeric_bound(field: str) -> Optional[Tuple[str, str]]:
    for suffix, op in (("_min", "gte"), ("_max", "lte")):
        if field.endswith(suffix) and field[: -len(suffix)] in NUMERIC_COLUMNS:
            return field[: -len(suffix)], op
    return None


def to_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return int(value)
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            return None
    return None


def to_bool(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in ("true", "false"):
            return lowered == "true"
    return None


def to_string_list(value: Any) -> Optional[List[str]]:
    if isinstance(value, str):
        return [value]
    if isinstance(value, list) and all(isinstance(v, str) for v in value):
        return list(value)
    return None


def _quote(value: str) -> str:
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def build_query(filters: Dict[str, Any], limit: Optional[int] = None, offset: Optional[int] = None) -> List[Tuple[str, str]]:
    """Translate a filter mapping into PostgREST query parameters."""
    params: List[Tuple[str, str]] = [("select", "*")]

    for key in sorted(filters):
        field, value = key.strip(), filters[key]
        if not field or value is None:
            continue

        bound = numeric_bound(field)
        if bound:
            number = to_int(value)
            if number is not None:
                column, op = bound
                params.append((column, f"{op}.{number}"))
            continue

        if field in BOOLEAN_COLUMNS:
            flag = to_bool(value)
            if flag is not None:
                params.append((field, f"is.{'true' if flag else 'false'}"))
            continue

        if field in STRING_COLUMNS:
            values = to_string_list(value)
            if not values:
                continue
            if len(values) == 1:
                params.append((field, f"eq.{values[0]}"))
            else:
                params.append((field, "in.(" + ",".join(_quote(v) for v in values) + ")"))
            continue

        logger.debug(f"ignoring unknown filter field: {field}")

    if limit is not None:
        params.append(("limit", str(limit)))
    if offset is not None:
        params.append(("offset", str(offset)))
    return params


class PersonaStore:
    def __init__(
        self,
        base_url: str,
        service_key: str,
        db_schema: str = "public",
        table: str = "persona_bank",
        client: Optional[httpx.Client] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.service_key = service_key
        self.db_schema = db_schema
        self.table = table
        self.client = client or httpx.Client(timeout=20.0)

    @classmethod
    def from_settings(cls, settings: PersonaStoreSettings, client: Optional[httpx.Client] = None) -> "PersonaStore":
        if not settings.configured:
            raise ConfigError("persona store not configured: set SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY")
        return cls(settings.base_url, settings.service_key, settings.db_schema, settings.table, client=client)

    @property
    def endpoint(self) -> str:
        return f"{self.base_url}/rest/v1/{self.table}"

    def _headers(self) -> Dict[str, str]:
        return {
            "apikey": self.service_key,
            "Authorization": f"Bearer {self.service_key}",
            "Accept": "application/json",
            "Accept-Profile": self.db_schema,
        }

    def fetch(self, filters: Dict[str, Any], limit: Optional[int] = None, offset: Optional[int] = None) -> List[Dict[str, Any]]:
        params = build_query(filters, limit, offset)
        try:
            response = self.client.get(self.endpoint, params=params, headers=self._headers())
        except httpx.HTTPError as e:
            raise PersonaStoreError(f"persona store unreachable: {e}") from e
        if response.status_code >= 400:
            raise PersonaStoreError(f"persona store error {response.status_code}: {response.text}")
        try:
            rows = response.json()
        except ValueError as e:
            raise PersonaStoreError(f"persona store returned invalid JSON: {e}") from e
        if not isinstance(rows, list):
            raise PersonaStoreError("persona store returned a non-array body")
        logger.info(f"persona filter matched {len(rows)} rows")
        return rows

    def health_check(self) -> bool:
        return not self.client.is_closed
