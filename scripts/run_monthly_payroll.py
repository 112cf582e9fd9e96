"""
Payroll Script: Run Monthly Payroll
===================================
Generates salary slips for every active employee (or the given staff
subset) for one salary period.

Defaults to the previous calendar month. Safe to re-run: employees who
already have a slip for the period are skipped.

Usage:
    python scripts/run_monthly_payroll.py --period 2026-01
    python scripts/run_monthly_payroll.py --employee-id <uuid> --employee-id <uuid>
    python scripts/run_monthly_payroll.py --period 2026-01 --dry-run
"""

import argparse
import asyncio
import sys
import uuid
from datetime import date

# Add project root to path
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent))

from dateutil.relativedelta import relativedelta

from app.database import async_session_maker
from app.services.employee_directory import EmployeeDirectory
from app.services.payroll_runner import PayrollRunner
from app.services.salary_slip_service import SalarySlipService


def previous_period() -> str:
    return (date.today() - relativedelta(months=1)).strftime("%Y-%m")


async def dry_run(period: str, employee_ids):
    """Print what each slip would contain without persisting anything."""
    async with async_session_maker() as db:
        directory = EmployeeDirectory(db)
        service = SalarySlipService(db)
        ids = employee_ids or await directory.list_active_employees()

        for employee_id in ids:
            employee = await directory.get_employee(employee_id)
            if employee is None:
                print(f"  {employee_id}: not found")
                continue
            if await service.find_slip(employee_id, period) is not None:
                print(f"  {employee.staff_number}: already generated, skipped")
                continue
            values = await service.compute_slip_values(employee, period)
            print(
                f"  {employee.staff_number:<12} earnings {values['total_earnings']:>14,.2f}"
                f"  deductions {values['total_deductions']:>14,.2f}"
                f"  net {values['net_payable']:>14,.2f}"
            )


async def main():
    parser = argparse.ArgumentParser(description="Generate salary slips for a period")
    parser.add_argument("--period", type=str, default=None, help="Salary period YYYY-MM (default: previous month)")
    parser.add_argument("--employee-id", action="append", default=None, help="Limit to these employees")
    parser.add_argument("--dry-run", action="store_true", help="Show the computed totals without saving")
    args = parser.parse_args()

    period = args.period or previous_period()
    employee_ids = [uuid.UUID(value) for value in args.employee_id] if args.employee_id else None

    print("=" * 60)
    print(f"Monthly Payroll: {period}{' (dry run)' if args.dry_run else ''}")
    print("=" * 60)

    if args.dry_run:
        await dry_run(period, employee_ids)
        return

    async with async_session_maker() as db:
        runner = PayrollRunner(db)
        report = await runner.bulk_generate(period, employee_ids)

    print(f"Generated: {report.generated_count}")
    print(f"Skipped:   {report.skipped_count}")
    print(f"Errors:    {len(report.errors)}")
    for error in report.errors:
        print(f"  {error['employee_id']}: {error['error']}")

    print("=" * 60)
    if report.errors:
        sys.exit(1)


if __name__ == "__main__":
    asyncio.run(main())
