# kontrak/domain/contracts.py
from __future__ import annotations

import secrets
from datetime import datetime, timezone, tzinfo
from typing import Dict, Optional

from kontrak.domain.models import ContractRecord
from kontrak.domain.money import format_idr

CONTRACT_NUMBER_PREFIX = "KTR"
UNSIGNED_PLACEHOLDER = "[Belum Ditandatangani]"

DEFAULT_CONTRACT_TEMPLATE = """# PERJANJIAN LAYANAN KONSULTASI INVESTASI

**Nomor Kontrak:** {{CONTRACT_NUMBER}}
**Tanggal:** {{CONTRACT_DATE}}

## PIHAK PERTAMA
**Nama:** {{CLIENT_NAME}}
**Email:** {{CLIENT_EMAIL}}
**Telepon:** {{CLIENT_PHONE}}
**Alamat:** {{CLIENT_ADDRESS}}

## PIHAK KEDUA
**PT. Konsultasi Profesional Indonesia**
**Alamat:** Tower 2 Lantai 17 Jl. H. R. Rasuna Said Blok X-5 No.Kav. 2-3, RT.1/RW.2, Kuningan, Jakarta Selatan 12950
**Kontak:** Prof. Bima Agung Rachel
**Telepon:** +62 852 - 5852 - 8771

---

## KETENTUAN KONTRAK

**Pihak Pertama** setuju untuk menggunakan layanan konsultasi investasi yang disediakan oleh **Pihak Kedua**.

### Pasal 1: Layanan
1.1. Pihak Kedua menyediakan layanan analisis pasar dan konsultasi investasi.
1.2. Layanan meliputi analisis data, laporan riset pasar, dan rekomendasi investasi.

### Pasal 2: Nilai Kontrak
2.1. Nilai total kontrak adalah **{{AMOUNT}}**
2.2. Pembayaran dilakukan sesuai kesepakatan yang telah ditentukan.

### Pasal 3: Kewajiban dan Hak
3.1. Pihak Kedua wajib memberikan layanan sesuai standar profesional.
3.2. Pihak Pertama wajib memberikan informasi yang diperlukan untuk analisis.
3.3. Semua informasi bersifat rahasia dan tidak boleh disebarkan.

### Pasal 4: Berlaku
4.1. Kontrak ini berlaku sejak ditandatangani kedua belah pihak.
4.2. Kontrak dapat diperpanjang atas kesepakatan bersama.

---

**TANDA TANGAN**

**Pihak Kedua:**                           **Pihak Pertama:**
Prof. Bima Agung Rachel                    {{CLIENT_NAME}}

**Tanggal:** {{SIGNED_DATE}}"""


def generate_contract_number(now: Optional[datetime] = None, tz: Optional[tzinfo] = None) -> str:
    """
    KTR + YYYYMMDD + four random digits, e.g. "KTR202610190042".

    The date is the calendar day in `tz` when one is given, so it agrees
    with the dates rendered into the contract. Not guaranteed unique; the
    repository retries on a duplicate key.
    """
    now = now or datetime.now(timezone.utc)
    if tz is not None:
        now = _localize(now, tz)
    return f"{CONTRACT_NUMBER_PREFIX}{now:%Y%m%d}{secrets.randbelow(9999):04d}"


def generate_access_link() -> str:
    return secrets.token_hex(32)


def _localize(value: datetime, tz: tzinfo) -> datetime:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(tz)


def format_date_id(value: datetime, tz: tzinfo) -> str:
    """Indonesian short date: 5/3/2026."""
    local = _localize(value, tz)
    return f"{local.day}/{local.month}/{local.year}"


def format_datetime_id(value: datetime, tz: tzinfo) -> str:
    """Indonesian short date and time: 5/3/2026, 14.05.09."""
    local = _localize(value, tz)
    return f"{format_date_id(local, tz)}, {local:%H.%M.%S}"


def template_values(contract: ContractRecord, tz: tzinfo) -> Dict[str, str]:
    created = contract.created_at or datetime.now(timezone.utc)
    return {
        "{{CONTRACT_NUMBER}}": contract.number,
        "{{CONTRACT_DATE}}": format_date_id(created, tz),
        "{{CLIENT_NAME}}": contract.client_name,
        "{{CLIENT_EMAIL}}": contract.client_email,
        "{{CLIENT_PHONE}}": contract.client_phone or "",
        "{{CLIENT_ADDRESS}}": contract.client_address or "",
        "{{AMOUNT}}": format_idr(contract.amount),
        "{{SIGNED_DATE}}": (
            format_date_id(contract.signed_at, tz) if contract.signed_at else UNSIGNED_PLACEHOLDER
        ),
    }


def render_contract(contract: ContractRecord, tz: tzinfo) -> str:
    """
    Fill the contract body's {{PLACEHOLDER}} tokens.
    Unknown placeholders are left as they are.
    """
    content = contract.content or DEFAULT_CONTRACT_TEMPLATE
    for token, value in template_values(contract, tz).items():
        content = content.replace(token, value)
    return content
