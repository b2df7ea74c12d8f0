"""
Report service for generating export files.
Supports CSV and Excel (XLSX) formats.
"""

import csv
import io
from collections import defaultdict
from datetime import date
from typing import List, Literal, Optional

import structlog
from django.utils import timezone
from openpyxl import Workbook
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter

from apps.analytics.aggregator import improvement_category, session_summary
from apps.analytics.services import load_patient_rows, load_series_rows
from apps.catalog.therapy_types import therapy_type_name
from apps.core.principal import ROLE_INSTRUCTOR, require_role
from apps.patients.repositories import PatientRepository
from apps.therapy_sessions.models import TherapySession
from apps.therapy_sessions.progress import compute_progress

logger = structlog.get_logger(__name__)

CONTENT_TYPES = {
    "csv": "text/csv",
    "xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
}


def _fmt_datetime(value):
    return value.strftime("%Y-%m-%d %H:%M") if value else ""


class ReportService:
    """Service for generating export reports for one instructor."""

    def export_patient_report(
        self,
        principal,
        format: Literal["csv", "xlsx"] = "xlsx",
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        patient_id=None,
        series_id=None,
    ) -> tuple:
        """
        Export per-patient progress and outcome rollup.

        Session stats only cover sessions inside the date range (and of
        ``series_id`` when given); progress is always the current state.

        Returns:
            Tuple of (file_bytes, filename, content_type)
        """
        require_role(principal, ROLE_INSTRUCTOR)
        if patient_id is not None:
            PatientRepository.get_owned(patient_id, principal.id)

        patients = load_patient_rows(principal.id)
        if patient_id is not None:
            patients = [p for p in patients if str(p.id) == str(patient_id)]
        series_by_id = {s.id: s for s in load_series_rows(principal.id)}

        sessions = self._sessions(principal.id, start_date, end_date, series_id)
        sessions_by_patient = defaultdict(list)
        for session in sessions:
            sessions_by_patient[session.patient_id].append(session)

        headers = [
            "Patient ID",
            "Patient Name",
            "Series",
            "Therapy Type",
            "Current Session",
            "Total Sessions",
            "Progress (%)",
            "Completed",
            "Sessions in Range",
            "Avg Pain Before",
            "Avg Pain After",
            "Avg Improvement",
            "Avg Rating",
            "Avg Duration (min)",
            "Practice Hours",
            "First Session",
            "Last Session",
        ]

        rows = []
        for patient in patients:
            history = sessions_by_patient.get(patient.id, [])
            if series_id is not None and not history and str(patient.assigned_series_id) != str(series_id):
                continue
            summary = session_summary(history)
            series = series_by_id.get(patient.assigned_series_id)
            progress = compute_progress(patient.current_session, series.total_sessions) if series else None

            rows.append([
                str(patient.id),
                patient.name,
                series.name if series else "",
                therapy_type_name(series.therapy_type) if series else "",
                patient.current_session,
                series.total_sessions if series else "",
                progress.percentage if progress else "",
                ("Yes" if progress.is_completed else "No") if progress else "",
                summary["total_sessions"],
                summary["avg_pain_before"],
                summary["avg_pain_after"],
                summary["avg_improvement"],
                summary["avg_rating"],
                summary["avg_duration"],
                summary["total_practice_hours"],
                _fmt_datetime(summary["first_session_at"]),
                _fmt_datetime(summary["last_session_at"]),
            ])

        logger.info(
            "patient_report_exported",
            instructor_id=principal.id,
            format=format,
            rows=len(rows),
        )
        return self._package(format, headers, rows, "patient_report", "Patient Progress")

    def export_session_history(
        self,
        principal,
        patient_id,
        format: Literal["csv", "xlsx"] = "xlsx",
    ) -> tuple:
        """
        Export every session of one patient, newest first, across
        assignments.
        """
        require_role(principal, ROLE_INSTRUCTOR)
        patient = PatientRepository.get_owned(patient_id, principal.id)

        sessions = (
            TherapySession.objects.filter(patient=patient)
            .select_related("series")
            .order_by("-completed_at", "-session_number")
        )

        headers = [
            "Completed At",
            "Series",
            "Session Number",
            "Pain Before",
            "Pain After",
            "Improvement",
            "Category",
            "Rating",
            "Duration (min)",
            "Postures Completed",
            "Postures Skipped",
            "Comments",
        ]

        rows = [
            [
                _fmt_datetime(session.completed_at),
                session.series.name,
                session.session_number,
                session.pain_before,
                session.pain_after,
                session.pain_improvement,
                improvement_category(session.pain_improvement),
                session.rating if session.rating is not None else "",
                session.duration_minutes if session.duration_minutes is not None else "",
                session.postures_completed,
                session.postures_skipped,
                session.comments,
            ]
            for session in sessions
        ]

        logger.info(
            "session_history_exported",
            instructor_id=principal.id,
            patient_id=str(patient.id),
            format=format,
            rows=len(rows),
        )

        patient_info = None
        if format == "xlsx":
            patient_info = {
                "Patient": patient.name,
                "Condition": patient.condition or "N/A",
                "Lifetime Sessions": patient.total_sessions_completed,
            }
        return self._package(
            format,
            headers,
            rows,
            f"patient_{patient.id}_sessions",
            "Session History",
            patient_info=patient_info,
        )

    def _sessions(self, instructor_id, start_date, end_date, series_id):
        queryset = TherapySession.objects.filter(
            patient__instructor_id=instructor_id,
            patient__is_active=True,
        )
        if start_date:
            queryset = queryset.filter(completed_at__date__gte=start_date)
        if end_date:
            queryset = queryset.filter(completed_at__date__lte=end_date)
        if series_id is not None:
            queryset = queryset.filter(series_id=series_id)
        return list(queryset)

    def _package(self, format, headers, rows, basename, sheet_name, patient_info=None):
        timestamp = timezone.now().strftime("%Y%m%d_%H%M%S")
        if format == "csv":
            return (
                self._generate_csv(headers, rows),
                f"{basename}_{timestamp}.csv",
                CONTENT_TYPES["csv"],
            )
        return (
            self._generate_xlsx(headers, rows, sheet_name, patient_info=patient_info),
            f"{basename}_{timestamp}.xlsx",
            CONTENT_TYPES["xlsx"],
        )

    def _generate_csv(self, headers: List[str], rows: List[List]) -> bytes:
        """Generate CSV file."""
        output = io.StringIO()
        writer = csv.writer(output)
        writer.writerow(headers)
        writer.writerows(rows)
        return output.getvalue().encode("utf-8")

    def _generate_xlsx(
        self,
        headers: List[str],
        rows: List[List],
        sheet_name: str = "Report",
        patient_info: Optional[dict] = None,
    ) -> bytes:
        """Generate Excel file with a styled header row."""
        wb = Workbook()
        ws = wb.active
        ws.title = sheet_name[:31]  # Excel sheet name limit

        header_font = Font(bold=True, color="FFFFFF")
        header_fill = PatternFill(start_color="2E7D6B", end_color="2E7D6B", fill_type="solid")
        thin = Side(style="thin")
        border = Border(left=thin, right=thin, top=thin, bottom=thin)

        start_row = 1
        if patient_info:
            for key, value in patient_info.items():
                ws.cell(row=start_row, column=1, value=key).font = Font(bold=True)
                ws.cell(row=start_row, column=2, value=value)
                start_row += 1
            start_row += 1

        for col_idx, header in enumerate(headers, 1):
            cell = ws.cell(row=start_row, column=col_idx, value=header)
            cell.font = header_font
            cell.fill = header_fill
            cell.alignment = Alignment(horizontal="center", vertical="center")
            cell.border = border

        for row_idx, row in enumerate(rows, start_row + 1):
            for col_idx, value in enumerate(row, 1):
                cell = ws.cell(row=row_idx, column=col_idx, value=value)
                cell.border = border

        for col_idx, header in enumerate(headers, 1):
            widest = max([len(str(header))] + [len(str(row[col_idx - 1])) for row in rows])
            ws.column_dimensions[get_column_letter(col_idx)].width = min(widest + 2, 50)

        ws.freeze_panes = ws.cell(row=start_row + 1, column=1)

        output = io.BytesIO()
        wb.save(output)
        return output.getvalue()
