"""CSV parsing and validation for bulk employee upload.

The upload is validated as a whole before anything is written: one bad row
rejects the file. Row numbers in messages skip blank lines and start at
2 for the first data row, after the header.
"""

import csv
import io
from dataclasses import dataclass, field
from datetime import date

from pydantic import ValidationError

from learnhub.employees.schemas import CreateEmployeeRequest


TEMPLATE_COLUMNS = [
    "first_name",
    "last_name",
    "email",
    "phone",
    "employee_code",
    "department",
    "designation",
    "date_of_joining",
]

TEMPLATE_CSV = (
    ",".join(TEMPLATE_COLUMNS)
    + "\n"
    + "John,Doe,john.doe@example.com,+91 9876543210,EMP001,Engineering,"
    "Software Engineer,2024-01-15\n"
    + "Jane,Smith,jane.smith@example.com,+91 9876543211,EMP002,HR,HR Manager,"
    "2024-02-01\n"
)

FIRST_DATA_ROW = 2


class CSVImportError(ValueError):
    """The file could not be read as an employee CSV."""


@dataclass
class EmployeeRow:
    """One parsed data row; empty cells are None."""

    row_number: int
    first_name: str | None = None
    last_name: str | None = None
    email: str | None = None
    phone: str | None = None
    employee_code: str | None = None
    department: str | None = None
    designation: str | None = None
    date_of_joining: date | None = None
    errors: list[str] = field(default_factory=list)

    def to_request(self) -> CreateEmployeeRequest:
        """Build the create request; raises ValidationError on bad values."""
        return CreateEmployeeRequest(
            first_name=self.first_name,
            last_name=self.last_name,
            email=self.email,
            phone=self.phone,
            employee_code=self.employee_code,
            department=self.department,
            designation=self.designation,
            date_of_joining=self.date_of_joining,
        )


def _clean(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip()
    return value or None


def _parse_date(value: str | None, row_number: int, errors: list[str]) -> date | None:
    if value is None:
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        errors.append(f"Row {row_number}: Invalid date_of_joining '{value}' (use YYYY-MM-DD)")
        return None


def parse_employee_csv(text: str) -> list[EmployeeRow]:
    """Parse CSV text into rows.

    Header names are trimmed. Unknown columns are ignored and blank lines
    skipped.

    Raises:
        CSVImportError: If there is no header or no data row
    """
    text = text.lstrip("\ufeff")
    reader = csv.reader(io.StringIO(text))
    lines = [cells for cells in reader if any(cell.strip() for cell in cells)]
    if len(lines) < FIRST_DATA_ROW:
        raise CSVImportError("No valid employee data found in file")

    headers = [h.strip().lower() for h in lines[0]]
    rows: list[EmployeeRow] = []
    for index, cells in enumerate(lines[1:]):
        row_number = index + FIRST_DATA_ROW
        values = dict(zip(headers, (_clean(c) for c in cells), strict=False))
        row = EmployeeRow(
            row_number=row_number,
            first_name=values.get("first_name"),
            last_name=values.get("last_name"),
            email=values.get("email"),
            phone=values.get("phone"),
            employee_code=values.get("employee_code"),
            department=values.get("department"),
            designation=values.get("designation"),
        )
        row.date_of_joining = _parse_date(
            values.get("date_of_joining"), row_number, row.errors
        )
        rows.append(row)
    return rows


def validate_row(row: EmployeeRow) -> list[str]:
    """Return the validation messages for a row (empty when valid)."""
    missing = []
    if not row.first_name:
        missing.append(f"Row {row.row_number}: First name is required")
    if not row.last_name:
        missing.append(f"Row {row.row_number}: Last name is required")
    if not row.email:
        missing.append(f"Row {row.row_number}: Email is required")
    errors = row.errors + missing
    if missing:
        return errors

    # Checked against the create schema itself.
    try:
        row.to_request()
    except ValidationError as e:
        for error in e.errors():
            field_name = ".".join(str(part) for part in error.get("loc", ()))
            if field_name == "email":
                errors.append(f"Row {row.row_number}: Invalid email format")
            else:
                errors.append(f"Row {row.row_number}: {field_name}: {error['msg']}")
    return errors


def validate_rows(rows: list[EmployeeRow], max_rows: int) -> list[str]:
    """Validate the whole upload; any message means nothing is imported."""
    if len(rows) > max_rows:
        return [f"File has {len(rows)} rows; the maximum is {max_rows}"]

    errors: list[str] = []
    seen_emails: dict[str, int] = {}
    seen_codes: dict[str, int] = {}
    for row in rows:
        errors.extend(validate_row(row))
        if row.email:
            email = row.email.lower()
            if email in seen_emails:
                errors.append(
                    f"Row {row.row_number}: Email {row.email} duplicates row {seen_emails[email]}"
                )
            else:
                seen_emails[email] = row.row_number
        if row.employee_code:
            if row.employee_code in seen_codes:
                errors.append(
                    f"Row {row.row_number}: Employee code {row.employee_code} "
                    f"duplicates row {seen_codes[row.employee_code]}"
                )
            else:
                seen_codes[row.employee_code] = row.row_number
    return errors
