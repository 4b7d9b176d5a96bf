"""Import pipeline: row validation, record building and batch submission."""
from datetime import datetime, timezone

import pytest
from sqlmodel import select

from app.core.exceptions import (
    EmptyImportError,
    ImportStructureError,
    ImportSubmissionError,
    ImportValidationError,
)
from app.models import Project
from app.services.project_import import (
    import_projects,
    normalize_row,
    occupancy_for,
    prepare_import,
    submit_batch,
)

NOW = datetime(2026, 2, 1, 8, 0, tzinfo=timezone.utc)


def valid_row(**overrides):
    row = {
        "regional": "JABAR",
        "no_project": "PRJ100",
        "nama_project": "Project Bandung",
        "pop": "POP BANDUNG",
        "port": "64",
        "port_terisi": "16",
        "progress": "SURVEY",
        "revenue": "1000",
    }
    row.update(overrides)
    return row


class TestEndToEnd:
    def test_numbered_and_lowercase_values_are_normalized(self):
        row = {
            "regional": "1. jabar",
            "no_project": "PRJ001",
            "nama_project": "Test",
            "pop": "POP1",
            "port": "100",
            "port_terisi": "25",
            "progress": "18. bast",
            "revenue": "500000000",
        }

        records = prepare_import([row], "DEPLOYMENT", now=NOW)

        assert len(records) == 1
        record = records[0]
        assert record["regional"] == "JABAR"
        assert record["progress"] == "BAST"
        assert record["status"] == "RFS"
        assert record["uic"] == "DEPLOYMENT"
        assert record["persentase"] == "85"
        assert record["occupancy"] == "25"
        assert record["capex"] == "300000000"
        assert record["port"] == "100"
        assert record["division"] == "DEPLOYMENT"
        assert record["update_progress"] == NOW.isoformat()
        assert "idle_port" not in record


class TestValidation:
    def test_one_bad_row_rejects_everything(self):
        rows = [valid_row(no_project="PRJ1"), valid_row(no_project="PRJ2", regional="BALI"), valid_row(no_project="PRJ3")]

        with pytest.raises(ImportValidationError) as exc_info:
            prepare_import(rows, "PLANNING")

        errors = exc_info.value.errors
        assert len(errors) == 1
        assert errors[0].startswith('Baris 3: Regional tidak valid "BALI"')

    def test_required_fields(self):
        _, errors = normalize_row(valid_row(regional="", pop=None), 2, "PLANNING")
        assert "Baris 2: Regional wajib diisi" in errors
        assert "Baris 2: POP wajib diisi" in errors

    def test_no_project_length(self):
        _, errors = normalize_row(valid_row(no_project="X" * 21), 2, "PLANNING")
        assert errors == ["Baris 2: No Project maksimal 20 karakter"]

    def test_unknown_progress_with_suggestion(self):
        _, errors = normalize_row(valid_row(progress="perizin"), 5, "DEPLOYMENT")
        assert errors == ['Baris 5: Progress tidak valid "PERIZIN". Mungkin maksud Anda: "PERIZINAN"?']

    def test_unknown_progress_without_suggestion(self):
        _, errors = normalize_row(valid_row(progress="xyz"), 2, "PLANNING")
        assert len(errors) == 1
        assert errors[0].startswith('Baris 2: Progress tidak valid "XYZ". Gunakan salah satu: REJECT')

    def test_alias_is_accepted(self):
        row, errors = normalize_row(valid_row(progress="hold"), 2, "PLANNING")
        assert errors == []
        assert row["progress"] == "PENDING / HOLD"

    def test_invalid_circulir_status(self):
        _, errors = normalize_row(valid_row(circulir_status="done"), 2, "PLANNING")
        assert errors[0].startswith('Baris 2: Circulir Status tidak valid "done"')

    def test_numeric_fields(self):
        _, errors = normalize_row(valid_row(port="banyak", toc="satu bulan"), 2, "PLANNING")
        assert errors == ["Baris 2: Port harus berupa angka", "Baris 2: TOC harus berupa angka (hari)"]

    def test_error_message_preview(self):
        rows = [valid_row(no_project=f"PRJ{i}", regional="BALI") for i in range(7)]

        with pytest.raises(ImportValidationError) as exc_info:
            prepare_import(rows, "PLANNING")

        error = exc_info.value
        assert len(error.errors) == 7
        assert error.details["error_count"] == 7
        assert len(error.details["errors"]) == 5
        assert error.message.startswith("Validasi gagal:\nBaris 2:")
        assert error.message.endswith("... dan 2 error lainnya")


class TestDivisionGate:
    def test_planning_cannot_import_deployment_stage(self):
        _, errors = normalize_row(valid_row(progress="DONE"), 2, "PLANNING")
        assert errors == ["Baris 2: User PLANNING tidak boleh import project dengan progress DEPLOYMENT"]

    def test_deployment_can_import_deployment_stage(self):
        _, errors = normalize_row(valid_row(progress="DONE"), 2, "DEPLOYMENT")
        assert errors == []

    def test_deployment_cannot_import_planning_stage(self):
        _, errors = normalize_row(valid_row(progress="SPK"), 2, "DEPLOYMENT")
        assert errors == ["Baris 2: User DEPLOYMENT tidak boleh import project dengan progress PLANNING"]

    @pytest.mark.parametrize("division", ["PLANNING", "DEPLOYMENT"])
    def test_shared_stages_are_open(self, division):
        _, errors = normalize_row(valid_row(progress="REJECT"), 2, division)
        assert errors == []


class TestRecords:
    def test_blank_progress_gets_default_fields(self):
        record = prepare_import([valid_row(progress="")], "PLANNING")[0]
        assert record["progress"] == ""
        assert record["status"] == "PENDING"
        assert record["uic"] == "PLANNING & DEPLOYMENT"
        assert record["persentase"] == "0"

    def test_occupancy_without_ports(self):
        record = prepare_import([valid_row(port="", port_terisi="5")], "PLANNING")[0]
        assert record["port"] == "0"
        assert record["occupancy"] == "0"

    def test_prefixed_integer_literal(self):
        record = prepare_import([valid_row(port="0x10", port_terisi="4")], "PLANNING")[0]
        assert record["port"] == "16"
        assert record["occupancy"] == "25"

    @pytest.mark.parametrize("port,port_terisi,expected", [
        ("64", "16", "25"),
        ("3", "2", "67"),
        ("8", "1", "13"),
        ("1e-300", "1e300", "0"),
    ])
    def test_occupancy_rounding(self, port, port_terisi, expected):
        assert occupancy_for(port, port_terisi) == expected

    def test_numbers_from_spreadsheet_cells(self):
        record = prepare_import([valid_row(port=48, port_terisi=12.0, toc=30, revenue=2500000.0)], "PLANNING")[0]
        assert record["port"] == "48"
        assert record["port_terisi"] == "12"
        assert record["toc"] == "30"
        assert record["occupancy"] == "25"
        assert record["capex"] == "1500000"

    def test_dates_and_text(self):
        row = valid_row(
            start_pekerjaan=datetime(2026, 1, 15),
            target_active="2026-03-01",
            tanggal_active="belum ada",
            target_bep=45672,
            circulir_status="ONGOING",
            mitra="  PT Mitra A ",
            remark="",
        )

        record = prepare_import([row], "PLANNING")[0]

        assert record["start_pekerjaan"] == "2026-01-15"
        assert record["target_active"] == "2026-03-01"
        assert record["tanggal_active"] == "belum ada"
        assert record["target_bep"] == "2025-01-15"
        assert record["aging_toc"] is None
        assert record["circulir_status"] == "ongoing"
        assert record["mitra"] == "PT Mitra A"
        assert record["remark"] is None

    def test_rows_without_identity_are_dropped(self):
        rows = [valid_row(), valid_row(no_project=" ", nama_project=" ")]
        records = prepare_import(rows, "PLANNING")
        assert [r["no_project"] for r in records] == ["PRJ100"]

    def test_empty_batch_is_rejected(self):
        # Whitespace passes the required check but leaves nothing to insert
        rows = [valid_row(no_project=" ", nama_project=" "), valid_row(no_project="\t", nama_project="  ")]
        with pytest.raises(EmptyImportError):
            prepare_import(rows, "PLANNING")

    def test_no_rows_is_rejected(self):
        with pytest.raises(EmptyImportError):
            prepare_import([], "PLANNING")

    def test_row_limit(self):
        with pytest.raises(ImportStructureError) as exc_info:
            prepare_import([valid_row(no_project=f"P{i}") for i in range(3)], "PLANNING", max_rows=2)
        assert "melebihi batas maksimal 2 baris" in exc_info.value.message


class TestSubmission:
    def test_batch_is_inserted(self, session, planning_user):
        records = prepare_import([valid_row(no_project="PRJ1"), valid_row(no_project="PRJ2")], "PLANNING")

        submit_batch(session, records, created_by=planning_user.id)

        projects = session.exec(select(Project).order_by(Project.no_project)).all()
        assert [p.no_project for p in projects] == ["PRJ1", "PRJ2"]
        assert all(p.created_by == planning_user.id for p in projects)
        assert projects[0].idle_port == 48

    def test_duplicate_rejects_whole_batch(self, session, make_project):
        make_project("PRJ2")
        records = prepare_import([valid_row(no_project="PRJ1"), valid_row(no_project="PRJ2")], "PLANNING")

        with pytest.raises(ImportSubmissionError) as exc_info:
            submit_batch(session, records)

        assert exc_info.value.message.startswith("Gagal menyimpan data: ")
        assert "no_project" in exc_info.value.message
        projects = session.exec(select(Project)).all()
        assert [p.no_project for p in projects] == ["PRJ2"]


class TestImportProjects:
    def test_workbook_import(self, session, make_workbook, deployment_user):
        content = make_workbook({
            "Panduan": [["Baca panduan sebelum import"]],
            "Data": [
                ["regional", "no_project", "nama_project", "pop", "port", "port_terisi", "progress", "revenue"],
                ["1. jabar", "PRJ001", "Test", "POP1", 100, 25, "18. bast", 500000000],
                ["JATIM", "PRJ002", "Surabaya", "POP2", 200, 150, "CONSTRUCTION", 800000000],
            ],
        })

        result = import_projects(session, content, "projects.xlsx", deployment_user)

        assert result.imported == 2
        assert result.sheet == "Data"
        assert result.message == "Berhasil import 2 project ke database"
        project = session.exec(select(Project).where(Project.no_project == "PRJ001")).one()
        assert project.regional == "JABAR"
        assert project.status == "RFS"
        assert project.division == "DEPLOYMENT"
        assert project.created_by == deployment_user.id
        second = session.exec(select(Project).where(Project.no_project == "PRJ002")).one()
        assert second.progress == "CONST"
        assert second.occupancy == "75"

    def test_invalid_workbook_writes_nothing(self, session, make_workbook, planning_user):
        content = make_workbook({
            "Data": [
                ["regional", "no_project", "nama_project", "pop", "progress"],
                ["JABAR", "PRJ001", "Test", "POP1", "SURVEY"],
                ["JABAR", "PRJ002", "Test 2", "POP2", "DONE"],
            ],
        })

        with pytest.raises(ImportValidationError):
            import_projects(session, content, "projects.xlsx", planning_user)

        assert session.exec(select(Project)).all() == []
