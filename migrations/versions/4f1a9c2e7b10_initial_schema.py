"""initial schema: tenants, rbac, employees, periods, incidences, absence workflow, prenomina

Revision ID: 4f1a9c2e7b10
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '4f1a9c2e7b10'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _qty(name):
    return sa.Column(name, sa.Numeric(7, 2), nullable=False, server_default='0')


def _money(name):
    return sa.Column(name, sa.Numeric(15, 2), nullable=False, server_default='0')


def upgrade() -> None:
    op.create_table(
        'companies',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('code', sa.String(length=50), nullable=False, unique=True),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )

    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('company_id', sa.Integer(), sa.ForeignKey('companies.id', ondelete='SET NULL'), nullable=True),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('full_name', sa.String(length=255), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)

    op.create_table(
        'roles',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('code', sa.String(length=50), nullable=False, unique=True),
        sa.Column('name', sa.String(length=120), nullable=True),
    )
    op.create_table(
        'permissions',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('code', sa.String(length=120), nullable=False, unique=True),
        sa.Column('name', sa.String(length=150), nullable=True),
    )
    op.create_table(
        'user_roles',
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), primary_key=True),
        sa.Column('role_id', sa.Integer(), sa.ForeignKey('roles.id', ondelete='CASCADE'), primary_key=True),
    )
    op.create_table(
        'role_permissions',
        sa.Column('role_id', sa.Integer(), sa.ForeignKey('roles.id', ondelete='CASCADE'), primary_key=True),
        sa.Column('permission_id', sa.Integer(), sa.ForeignKey('permissions.id', ondelete='CASCADE'),
                  primary_key=True),
    )

    op.create_table(
        'employees',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('company_id', sa.Integer(), sa.ForeignKey('companies.id', ondelete='RESTRICT'), nullable=False),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True, unique=True),
        sa.Column('supervisor_id', sa.Integer(), sa.ForeignKey('employees.id', ondelete='SET NULL'), nullable=True),
        sa.Column('code', sa.String(length=32), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=True, unique=True),
        sa.Column('first_name', sa.String(length=80), nullable=False),
        sa.Column('last_name', sa.String(length=80), nullable=True),
        sa.Column('collar_type', sa.String(length=20), nullable=False, server_default='white_collar'),
        sa.Column('daily_salary', sa.Numeric(12, 2), nullable=False, server_default='0'),
        sa.Column('integrated_daily_salary', sa.Numeric(12, 2), nullable=False, server_default='0'),
        sa.Column('hire_date', sa.Date(), nullable=True),
        sa.Column('termination_date', sa.Date(), nullable=True),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='active'),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.UniqueConstraint('company_id', 'code', name='uq_employee_company_code'),
    )
    op.create_index('ix_emp_company_status', 'employees', ['company_id', 'status'])

    op.create_table(
        'payroll_periods',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('company_id', sa.Integer(), sa.ForeignKey('companies.id', ondelete='RESTRICT'), nullable=False),
        sa.Column('period_code', sa.String(length=16), nullable=False),
        sa.Column('frequency', sa.String(length=16), nullable=False, server_default='biweekly'),
        sa.Column('start_date', sa.Date(), nullable=False),
        sa.Column('end_date', sa.Date(), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='open'),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.UniqueConstraint('company_id', 'period_code', name='uq_payroll_period_company_code'),
    )
    op.create_index('ix_payroll_periods_company_id', 'payroll_periods', ['company_id'])

    op.create_table(
        'absence_requests',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('company_id', sa.Integer(), sa.ForeignKey('companies.id'), nullable=False),
        sa.Column('employee_id', sa.Integer(), sa.ForeignKey('employees.id', ondelete='CASCADE'), nullable=False),
        sa.Column('request_type', sa.String(length=30), nullable=False),
        sa.Column('start_date', sa.Date(), nullable=False),
        sa.Column('end_date', sa.Date(), nullable=False),
        sa.Column('total_days', sa.Numeric(5, 2), nullable=False),
        sa.Column('reason', sa.Text(), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='PENDING'),
        sa.Column('current_approval_stage', sa.String(length=30), nullable=False, server_default='SUPERVISOR'),
        sa.Column('last_action_at', sa.DateTime(), nullable=False),
        sa.Column('escalation_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('is_escalated', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('version', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.CheckConstraint('escalation_count >= 0', name='ck_absence_escalation_count'),
    )
    op.create_index('ix_absence_requests_company_id', 'absence_requests', ['company_id'])
    op.create_index('ix_absence_requests_employee_id', 'absence_requests', ['employee_id'])
    op.create_index('ix_absence_pending_sweep', 'absence_requests', ['status', 'last_action_at'])

    op.create_table(
        'approval_history',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('request_id', sa.Integer(), sa.ForeignKey('absence_requests.id', ondelete='CASCADE'),
                  nullable=False),
        sa.Column('approver_user_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('approval_stage', sa.String(length=30), nullable=False),
        sa.Column('action', sa.String(length=20), nullable=False),
        sa.Column('comments', sa.Text(), nullable=True),
        sa.Column('acted_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_approval_history_request_id', 'approval_history', ['request_id'])

    op.create_table(
        'escalation_logs',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('absence_request_id', sa.Integer(), sa.ForeignKey('absence_requests.id', ondelete='CASCADE'),
                  nullable=False),
        sa.Column('from_stage', sa.String(length=30), nullable=False),
        sa.Column('to_stage', sa.String(length=30), nullable=False),
        sa.Column('escalated_at', sa.DateTime(), nullable=False),
        sa.Column('previous_action_at', sa.DateTime(), nullable=True),
        sa.Column('reason', sa.String(length=255), nullable=False),
    )
    op.create_index('ix_escalation_logs_absence_request_id', 'escalation_logs', ['absence_request_id'])

    op.create_table(
        'incidence_types',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('company_id', sa.Integer(), sa.ForeignKey('companies.id', ondelete='CASCADE'), nullable=True),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('category', sa.String(length=20), nullable=False),
        sa.Column('effect_type', sa.String(length=20), nullable=False),
        sa.Column('calculation_method', sa.String(length=30), nullable=True),
        sa.Column('default_value', sa.Numeric(15, 2), nullable=False, server_default='0'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_incidence_types_company_id', 'incidence_types', ['company_id'])

    op.create_table(
        'incidences',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('employee_id', sa.Integer(), sa.ForeignKey('employees.id', ondelete='RESTRICT'), nullable=False),
        sa.Column('payroll_period_id', sa.Integer(), sa.ForeignKey('payroll_periods.id', ondelete='RESTRICT'),
                  nullable=False),
        sa.Column('incidence_type_id', sa.Integer(), sa.ForeignKey('incidence_types.id', ondelete='RESTRICT'),
                  nullable=False),
        sa.Column('absence_request_id', sa.Integer(), sa.ForeignKey('absence_requests.id', ondelete='SET NULL'),
                  nullable=True),
        sa.Column('start_date', sa.Date(), nullable=False),
        sa.Column('end_date', sa.Date(), nullable=False),
        sa.Column('quantity', sa.Numeric(8, 2), nullable=False),
        sa.Column('calculated_amount', sa.Numeric(15, 2), nullable=False, server_default='0'),
        sa.Column('comments', sa.Text(), nullable=True),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='pending'),
        sa.Column('approved_by_user_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=True),
        sa.Column('approved_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_incidence_emp_period', 'incidences', ['employee_id', 'payroll_period_id'])

    op.create_table(
        'prenomina_metrics',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('employee_id', sa.Integer(), sa.ForeignKey('employees.id', ondelete='CASCADE'), nullable=False),
        sa.Column('payroll_period_id', sa.Integer(), sa.ForeignKey('payroll_periods.id', ondelete='CASCADE'),
                  nullable=False),
        sa.Column('calculation_status', sa.String(length=20), nullable=False, server_default='calculated'),
        sa.Column('calculation_date', sa.DateTime(), nullable=True),
        sa.Column('calculated_by_user_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=True),
        sa.Column('approved_by_user_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=True),
        sa.Column('approved_at', sa.DateTime(), nullable=True),
        _qty('worked_days'),
        _qty('regular_hours'),
        _qty('overtime_hours'),
        _qty('double_overtime_hours'),
        _qty('triple_overtime_hours'),
        _qty('absence_days'),
        _qty('sick_days'),
        _qty('vacation_days'),
        _qty('unpaid_leave_days'),
        sa.Column('delays_count', sa.Integer(), nullable=False, server_default='0'),
        _qty('delay_minutes'),
        sa.Column('early_departures_count', sa.Integer(), nullable=False, server_default='0'),
        _money('regular_salary'),
        _money('overtime_amount'),
        _money('double_overtime_amount'),
        _money('triple_overtime_amount'),
        _money('bonus_amount'),
        _money('commission_amount'),
        _money('other_extra_amount'),
        _money('loan_deduction'),
        _money('advance_deduction'),
        _money('other_deduction'),
        _money('delay_deduction'),
        _money('total_extras'),
        _money('total_deductions'),
        _money('gross_income'),
        _money('net_income'),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.UniqueConstraint('employee_id', 'payroll_period_id', name='uq_prenomina_emp_period'),
    )
    op.create_index('ix_prenomina_period', 'prenomina_metrics', ['payroll_period_id'])


def downgrade() -> None:
    op.drop_index('ix_prenomina_period', table_name='prenomina_metrics')
    op.drop_table('prenomina_metrics')
    op.drop_index('ix_incidence_emp_period', table_name='incidences')
    op.drop_table('incidences')
    op.drop_index('ix_incidence_types_company_id', table_name='incidence_types')
    op.drop_table('incidence_types')
    op.drop_index('ix_escalation_logs_absence_request_id', table_name='escalation_logs')
    op.drop_table('escalation_logs')
    op.drop_index('ix_approval_history_request_id', table_name='approval_history')
    op.drop_table('approval_history')
    op.drop_index('ix_absence_pending_sweep', table_name='absence_requests')
    op.drop_index('ix_absence_requests_employee_id', table_name='absence_requests')
    op.drop_index('ix_absence_requests_company_id', table_name='absence_requests')
    op.drop_table('absence_requests')
    op.drop_index('ix_payroll_periods_company_id', table_name='payroll_periods')
    op.drop_table('payroll_periods')
    op.drop_index('ix_emp_company_status', table_name='employees')
    op.drop_table('employees')
    op.drop_table('role_permissions')
    op.drop_table('user_roles')
    op.drop_table('permissions')
    op.drop_table('roles')
    op.drop_index('ix_users_email', table_name='users')
    op.drop_table('users')
    op.drop_table('companies')
