"""Generates the ``.xlsx`` template offered for download next to the import button."""
import io
from typing import Any, Dict, List

import openpyxl
from openpyxl.styles import Font
from openpyxl.utils import get_column_letter

from app.core.config import settings
from app.core.progress import PROGRESS_ALIASES, VALID_CIRCULIR_STATUS, VALID_PROGRESS, VALID_REGIONALS

TEMPLATE_COLUMNS = [
    "regional", "no_project", "no_spk", "pop", "nama_project", "port", "jumlah_odp",
    "mitra", "progress", "toc", "start_pekerjaan", "target_active", "tanggal_active",
    "aging_toc", "bep", "port_terisi", "target_bep", "revenue", "remark", "issue",
    "next_action", "circulir_status",
]

SAMPLE_ROWS: List[Dict[str, Any]] = [
    {
        "regional": "JABAR", "no_project": "PRJ001", "no_spk": "SPK123", "pop": "POP BANDUNG",
        "nama_project": "Project FTTH Bandung Timur", "port": 100, "jumlah_odp": 50,
        "mitra": "PT Mitra A", "progress": "CREATED BOQ", "toc": 30,
        "start_pekerjaan": "2026-01-15", "target_active": "2026-03-01", "bep": 12,
        "port_terisi": 25, "target_bep": "2026-05-01", "revenue": 500000000,
        "remark": "Project baru dalam tahap desain", "issue": "Belum ada issue",
        "next_action": "Survey lokasi", "circulir_status": "ongoing",
    },
    {
        "regional": "JATIM", "no_project": "PRJ002", "no_spk": "SPK124", "pop": "POP SURABAYA",
        "nama_project": "Project Expansion Surabaya Barat", "port": 200, "jumlah_odp": 80,
        "mitra": "PT Mitra B", "progress": "CONST", "toc": 45,
        "start_pekerjaan": "2025-12-01", "target_active": "2026-02-15",
        "tanggal_active": "2026-02-20", "aging_toc": "2026-02-10", "bep": 18,
        "port_terisi": 150, "target_bep": "2026-06-01", "revenue": 800000000,
        "remark": "Dalam tahap konstruksi", "issue": "Perizinan tertunda 3 hari",
        "next_action": "Follow up perizinan", "circulir_status": "ongoing",
    },
]

COLUMN_WIDTHS = {
    "nama_project": 35, "remark": 30, "issue": 30, "next_action": 30,
    "no_project": 15, "no_spk": 15, "regional": 20, "mitra": 20,
    "progress": 18, "revenue": 15,
}


def _guide_lines() -> List[str]:
    aliases: Dict[str, List[str]] = {}
    for alias, canonical in PROGRESS_ALIASES.items():
        aliases.setdefault(canonical, []).append(alias)

    lines = [
        "PANDUAN IMPORT DATA PROJECT",
        "",
        "KOLOM WAJIB (Harus diisi):",
        "1. regional - Regional project (JABAR, JATIM, etc)",
        "2. no_project - Nomor project unik (maksimal 20 karakter)",
        "3. nama_project - Nama project",
        "4. pop - Point of Presence",
        "",
        "FORMAT TANGGAL: YYYY-MM-DD (contoh: 2026-01-15)",
        "FORMAT ANGKA: port, jumlah_odp, toc, bep, port_terisi, revenue tanpa pemisah ribuan",
        "",
        "KOLOM AUTO-CALCULATE (Jangan diisi): status, uic, persentase, occupancy, capex, idle_port",
        "",
        "PROGRESS OPTIONS:",
        ", ".join(VALID_PROGRESS),
        "",
        "PROGRESS ALIASES (Otomatis dikonversi):",
    ]
    lines.extend(f"- {', '.join(names)} -> {canonical}" for canonical, names in aliases.items())
    lines.extend([
        "",
        "REGIONAL OPTIONS:",
        ", ".join(VALID_REGIONALS),
        "",
        "CIRCULIR STATUS OPTIONS:",
        ", ".join(VALID_CIRCULIR_STATUS),
        "",
        f"Maksimal {settings.IMPORT_MAX_ROWS} baris per import.",
    ])
    return lines


def build_import_template() -> bytes:
    """Return the template workbook: a ``Data`` sheet with samples and a ``Panduan`` sheet."""
    workbook = openpyxl.Workbook()

    data_sheet = workbook.active
    data_sheet.title = "Data"
    data_sheet.append(TEMPLATE_COLUMNS)
    for cell in data_sheet[1]:
        cell.font = Font(bold=True)
    for sample in SAMPLE_ROWS:
        data_sheet.append([sample.get(column) for column in TEMPLATE_COLUMNS])
    for index, column in enumerate(TEMPLATE_COLUMNS, start=1):
        letter = get_column_letter(index)
        data_sheet.column_dimensions[letter].width = COLUMN_WIDTHS.get(column, 12)

    guide_sheet = workbook.create_sheet("Panduan")
    for line in _guide_lines():
        guide_sheet.append([line])
    guide_sheet.column_dimensions["A"].width = 90

    buffer = io.BytesIO()
    workbook.save(buffer)
    workbook.close()
    return buffer.getvalue()
