"""Add payroll engine tables

Revision ID: 20260201_0900
Revises:
Create Date: 2026-02-01 09:00:00.000000

This migration creates the payroll engine:
- employees: Staff records payroll reads (base salary, active flag)
- pay_components: Benefits, incentives, bonuses, employer contributions
  and recurring deductions in one tagged table
- overtime_records: Extra hours (days x hours x rate) inside a window
- salary_advances: Advances amortized through paid slips
- salary_slips: Itemized slips, unique per employee and period
- advance_deductions: Ledger of installments posted by paid slips
- tax_slabs, tax_exemptions, minimum_tax_limits: Tax configuration
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID, JSON


# revision identifiers, used by Alembic.
revision = '20260201_0900'
down_revision = None
branch_labels = None
depends_on = None


def timestamps():
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def audit_columns():
    return [
        sa.Column('created_by_id', UUID(as_uuid=True), nullable=True),
        sa.Column('updated_by_id', UUID(as_uuid=True), nullable=True),
    ]


def upgrade() -> None:
    # ===========================================
    # EMPLOYEES TABLE
    # ===========================================
    op.create_table('employees',
        sa.Column('id', UUID(as_uuid=True), primary_key=True),
        sa.Column('staff_number', sa.String(50), nullable=False, unique=True, comment='Internal staff number'),
        sa.Column('full_name', sa.String(200), nullable=False),
        sa.Column('email', sa.String(255), nullable=True),
        sa.Column('base_salary', sa.Numeric(15, 2), nullable=False, server_default='0', comment='Monthly basic salary'),
        sa.Column('employment_status', sa.String(20), nullable=False, server_default='ACTIVE'),
        sa.Column('is_active', sa.Boolean, nullable=False, server_default=sa.true()),
        *timestamps(),
    )
    op.create_index('ix_employees_is_active', 'employees', ['is_active'])

    # ===========================================
    # PAY COMPONENTS TABLE
    # ===========================================
    op.create_table('pay_components',
        sa.Column('id', UUID(as_uuid=True), primary_key=True),
        sa.Column('employee_id', UUID(as_uuid=True), sa.ForeignKey('employees.id', ondelete='CASCADE'), nullable=False),
        sa.Column('kind', sa.String(30), nullable=False),
        sa.Column('label', sa.String(255), nullable=False),
        sa.Column('calculation_type', sa.String(20), nullable=False, server_default='FIXED'),
        sa.Column('amount', sa.Numeric(15, 2), nullable=False, comment='Fixed amount, or percentage of base salary'),
        sa.Column('effective_from', sa.Date, nullable=True),
        sa.Column('effective_until', sa.Date, nullable=True),
        sa.Column('is_active', sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column('notes', sa.Text, nullable=True),
        *audit_columns(),
        *timestamps(),
        sa.CheckConstraint('amount >= 0', name='ck_pay_components_component_amount_non_negative'),
    )
    op.create_index('ix_pay_components_employee_id', 'pay_components', ['employee_id'])
    op.create_index('ix_pay_components_kind', 'pay_components', ['kind'])

    # ===========================================
    # OVERTIME RECORDS TABLE
    # ===========================================
    op.create_table('overtime_records',
        sa.Column('id', UUID(as_uuid=True), primary_key=True),
        sa.Column('employee_id', UUID(as_uuid=True), sa.ForeignKey('employees.id', ondelete='CASCADE'), nullable=False),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('days_count', sa.Numeric(7, 2), nullable=False),
        sa.Column('hours_per_day', sa.Numeric(7, 2), nullable=False),
        sa.Column('hourly_rate', sa.Numeric(15, 2), nullable=False),
        sa.Column('period_start', sa.Date, nullable=False),
        sa.Column('period_end', sa.Date, nullable=False),
        sa.Column('is_active', sa.Boolean, nullable=False, server_default=sa.true()),
        *audit_columns(),
        *timestamps(),
    )
    op.create_index('ix_overtime_records_employee_id', 'overtime_records', ['employee_id'])

    # ===========================================
    # SALARY ADVANCES TABLE
    # ===========================================
    op.create_table('salary_advances',
        sa.Column('id', UUID(as_uuid=True), primary_key=True),
        sa.Column('employee_id', UUID(as_uuid=True), sa.ForeignKey('employees.id', ondelete='CASCADE'), nullable=False),
        sa.Column('advance_type', sa.String(30), nullable=False, server_default='SALARY_ADVANCE'),
        sa.Column('description', sa.String(500), nullable=True),
        sa.Column('principal_amount', sa.Numeric(15, 2), nullable=False),
        sa.Column('monthly_deduction', sa.Numeric(15, 2), nullable=False),
        sa.Column('remaining_balance', sa.Numeric(15, 2), nullable=False),
        sa.Column('issue_date', sa.Date, nullable=False),
        sa.Column('start_deduction_date', sa.Date, nullable=False),
        sa.Column('expected_completion_date', sa.Date, nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='ACTIVE'),
        sa.Column('notes', sa.Text, nullable=True),
        *audit_columns(),
        *timestamps(),
        sa.CheckConstraint('remaining_balance >= 0', name='ck_salary_advances_advance_balance_non_negative'),
        sa.CheckConstraint('monthly_deduction > 0', name='ck_salary_advances_advance_deduction_positive'),
    )
    op.create_index('ix_salary_advances_employee_id', 'salary_advances', ['employee_id'])
    op.create_index('ix_salary_advances_status', 'salary_advances', ['status'])

    # ===========================================
    # SALARY SLIPS TABLE
    # ===========================================
    op.create_table('salary_slips',
        sa.Column('id', UUID(as_uuid=True), primary_key=True),
        sa.Column('employee_id', UUID(as_uuid=True), sa.ForeignKey('employees.id', ondelete='CASCADE'), nullable=False),
        sa.Column('slip_reference', sa.String(30), nullable=False, comment='e.g. SLP-20260131-A3F9'),
        sa.Column('salary_period', sa.String(7), nullable=False, comment='YYYY-MM'),
        sa.Column('basic_salary', sa.Numeric(15, 2), nullable=False),

        # Breakdowns
        sa.Column('benefits', JSON, nullable=False),
        sa.Column('incentives', JSON, nullable=False),
        sa.Column('bonus', JSON, nullable=False),
        sa.Column('overtime', JSON, nullable=False),
        sa.Column('contributions', JSON, nullable=False),
        sa.Column('deductions', JSON, nullable=False),
        sa.Column('advances', JSON, nullable=False),
        sa.Column('tax_breakdown', JSON, nullable=True),

        # Totals
        sa.Column('total_earnings', sa.Numeric(15, 2), nullable=False, server_default='0'),
        sa.Column('total_deductions', sa.Numeric(15, 2), nullable=False, server_default='0'),
        sa.Column('tax_amount', sa.Numeric(15, 2), nullable=False, server_default='0'),
        sa.Column('net_payable', sa.Numeric(15, 2), nullable=False, server_default='0'),

        # Lifecycle
        sa.Column('status', sa.String(20), nullable=False, server_default='DRAFT'),
        sa.Column('generated_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('sent_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('paid_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('payment_method', sa.String(20), nullable=True),
        sa.Column('payment_reference', sa.String(100), nullable=True),
        sa.Column('notes', sa.Text, nullable=True),
        *timestamps(),

        sa.UniqueConstraint('slip_reference', name='uq_salary_slips_slip_reference'),
        sa.UniqueConstraint('employee_id', 'salary_period', name='uq_salary_slip_employee_period'),
    )
    op.create_index('ix_salary_slips_employee_id', 'salary_slips', ['employee_id'])
    op.create_index('ix_salary_slips_salary_period', 'salary_slips', ['salary_period'])
    op.create_index('ix_salary_slips_status', 'salary_slips', ['status'])

    # ===========================================
    # ADVANCE DEDUCTIONS (LEDGER) TABLE
    # ===========================================
    op.create_table('advance_deductions',
        sa.Column('id', UUID(as_uuid=True), primary_key=True),
        sa.Column('advance_id', UUID(as_uuid=True), sa.ForeignKey('salary_advances.id', ondelete='CASCADE'), nullable=False),
        sa.Column('salary_slip_id', UUID(as_uuid=True), sa.ForeignKey('salary_slips.id', ondelete='RESTRICT'), nullable=False),
        sa.Column('requested_amount', sa.Numeric(15, 2), nullable=False),
        sa.Column('amount', sa.Numeric(15, 2), nullable=False, comment='Amount actually applied to the balance'),
        sa.Column('balance_before', sa.Numeric(15, 2), nullable=False),
        sa.Column('balance_after', sa.Numeric(15, 2), nullable=False),
        sa.Column('posted_at', sa.DateTime(timezone=True), nullable=False),
        *timestamps(),
        sa.UniqueConstraint('advance_id', 'salary_slip_id', name='uq_advance_deduction_slip'),
    )
    op.create_index('ix_advance_deductions_advance_id', 'advance_deductions', ['advance_id'])
    op.create_index('ix_advance_deductions_salary_slip_id', 'advance_deductions', ['salary_slip_id'])

    # ===========================================
    # TAX CONFIGURATION TABLES
    # ===========================================
    op.create_table('tax_slabs',
        sa.Column('id', UUID(as_uuid=True), primary_key=True),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('income_from', sa.Numeric(15, 2), nullable=False),
        sa.Column('income_to', sa.Numeric(15, 2), nullable=False),
        sa.Column('fixed_amount', sa.Numeric(15, 2), nullable=False, server_default='0'),
        sa.Column('percentage', sa.Numeric(7, 2), nullable=False, server_default='0'),
        sa.Column('is_active', sa.Boolean, nullable=False, server_default=sa.true()),
        *audit_columns(),
        *timestamps(),
        sa.CheckConstraint('income_to >= income_from', name='ck_tax_slabs_slab_range_ordered'),
    )
    op.create_index('ix_tax_slabs_is_active', 'tax_slabs', ['is_active'])

    op.create_table('tax_exemptions',
        sa.Column('id', UUID(as_uuid=True), primary_key=True),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('exemption_amount', sa.Numeric(15, 2), nullable=False),
        sa.Column('is_active', sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column('notes', sa.Text, nullable=True),
        *audit_columns(),
        *timestamps(),
    )
    op.create_index('ix_tax_exemptions_is_active', 'tax_exemptions', ['is_active'])

    op.create_table('minimum_tax_limits',
        sa.Column('id', UUID(as_uuid=True), primary_key=True),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('threshold_amount', sa.Numeric(15, 2), nullable=False),
        sa.Column('is_active', sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column('notes', sa.Text, nullable=True),
        *audit_columns(),
        *timestamps(),
    )
    op.create_index('ix_minimum_tax_limits_is_active', 'minimum_tax_limits', ['is_active'])


def downgrade() -> None:
    op.drop_table('minimum_tax_limits')
    op.drop_table('tax_exemptions')
    op.drop_table('tax_slabs')
    op.drop_table('advance_deductions')
    op.drop_table('salary_slips')
    op.drop_table('salary_advances')
    op.drop_table('overtime_records')
    op.drop_table('pay_components')
    op.drop_table('employees')
