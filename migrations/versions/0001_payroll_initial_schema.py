"""payroll initial schema

Revision ID: 0001_payroll_initial
Revises:
Create Date: 2025-11-03 10:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '0001_payroll_initial'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _money(name, nullable=False, default="0"):
    kw = {"server_default": default} if default is not None else {}
    return sa.Column(name, sa.Numeric(14, 2), nullable=nullable, **kw)


def _stamp(prefix):
    return [
        sa.Column(f'{prefix}_by_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=True),
        sa.Column(f'{prefix}_at', sa.DateTime(), nullable=True),
    ]


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), primary_key=True),
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
    )
    op.create_table(
        'user_roles',
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), primary_key=True),
        sa.Column('role_id', sa.Integer(), sa.ForeignKey('roles.id', ondelete='CASCADE'), primary_key=True),
    )

    op.create_table(
        'employees',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True, unique=True),
        sa.Column('code', sa.String(length=32), nullable=False, unique=True),
        sa.Column('name', sa.String(length=160), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=True, unique=True),
        sa.Column('phone', sa.String(length=20), nullable=True),
        sa.Column('department', sa.String(length=120), nullable=True),
        sa.Column('designation', sa.String(length=120), nullable=True),
        sa.Column('doj', sa.Date(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        _money('salary'),
        sa.Column('paid_days', sa.Integer(), nullable=False, server_default='30'),
        sa.Column('leaves', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('deduct_pf', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('deduct_esic', sa.Boolean(), nullable=False, server_default=sa.true()),
        _money('reimbursement'),
        sa.Column('note', sa.Text(), nullable=True),
        _money('basic'), _money('hra'), _money('conveyance'), _money('other_allowance'),
        _money('pf'), _money('esic'), _money('day_wise_deduction'), _money('net_salary'),
        sa.Column('version', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
    )

    op.create_table(
        'attendance_records',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('employee_id', sa.Integer(), sa.ForeignKey('employees.id', ondelete='RESTRICT'), nullable=False),
        sa.Column('employee_code', sa.String(length=32), nullable=False),
        sa.Column('employee_name', sa.String(length=160), nullable=False),
        sa.Column('month', sa.Integer(), nullable=False),
        sa.Column('year', sa.Integer(), nullable=False),
        sa.Column('total_working_days', sa.Integer(), nullable=False, server_default='30'),
        sa.Column('present_days', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('absent_days', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('casual_leaves', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('sick_leaves', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('earned_leaves', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('other_leaves', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('total_leaves', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('half_days', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('overtime_hours', sa.Numeric(6, 2), nullable=False, server_default='0'),
        sa.Column('deduct_pf', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('deduct_esic', sa.Boolean(), nullable=False, server_default=sa.true()),
        _money('reimbursement'),
        sa.Column('note', sa.Text(), nullable=True),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='draft'),
        *_stamp('submitted'), *_stamp('approved'), *_stamp('rejected'),
        sa.Column('comments', sa.Text(), nullable=True),
        sa.Column('version', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.UniqueConstraint('employee_id', 'month', 'year', name='uq_attendance_emp_period'),
    )
    op.create_index('ix_attendance_records_employee_id', 'attendance_records', ['employee_id'])
    op.create_index('ix_attendance_records_employee_code', 'attendance_records', ['employee_code'])
    op.create_index('ix_attendance_records_status', 'attendance_records', ['status'])
    op.create_index('ix_attendance_period', 'attendance_records', ['year', 'month'])

    op.create_table(
        'payslips',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('employee_id', sa.Integer(), sa.ForeignKey('employees.id', ondelete='RESTRICT'), nullable=False),
        sa.Column('employee_code', sa.String(length=32), nullable=False),
        sa.Column('employee_name', sa.String(length=160), nullable=False),
        sa.Column('month', sa.Integer(), nullable=False),
        sa.Column('year', sa.Integer(), nullable=False),
        _money('salary'),
        sa.Column('paid_days', sa.Integer(), nullable=False, server_default='30'),
        sa.Column('leaves', sa.Integer(), nullable=False, server_default='0'),
        _money('basic'), _money('hra'), _money('conveyance'), _money('other_allowance'),
        _money('pf'), _money('esic'), _money('day_wise_deduction'), _money('reimbursement'),
        _money('net_salary'),
        sa.Column('department', sa.String(length=120), nullable=True),
        sa.Column('designation', sa.String(length=120), nullable=True),
        sa.Column('generated_by_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=True),
        sa.Column('generated_at', sa.DateTime(), nullable=False),
        sa.Column('is_paid', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('paid_at', sa.DateTime(), nullable=True),
        sa.Column('email_sent', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('email_sent_at', sa.DateTime(), nullable=True),
        sa.Column('email_status', sa.String(length=16), nullable=False, server_default='not_sent'),
        sa.Column('email_message_id', sa.String(length=255), nullable=True),
        sa.Column('email_error', sa.Text(), nullable=True),
        sa.Column('version', sa.Integer(), nullable=False, server_default='1'),
        sa.UniqueConstraint('employee_id', 'month', 'year', name='uq_payslip_emp_period'),
    )
    op.create_index('ix_payslips_employee_id', 'payslips', ['employee_id'])
    op.create_index('ix_payslip_period', 'payslips', ['year', 'month'])

    op.create_table(
        'payslip_email_logs',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('payslip_id', sa.Integer(), sa.ForeignKey('payslips.id', ondelete='CASCADE'), nullable=False),
        sa.Column('sent_at', sa.DateTime(), nullable=False),
        sa.Column('success', sa.Boolean(), nullable=False),
        sa.Column('message_id', sa.String(length=255), nullable=True),
        sa.Column('error', sa.Text(), nullable=True),
        sa.Column('is_bulk', sa.Boolean(), nullable=False, server_default=sa.false()),
    )
    op.create_index('ix_payslip_email_logs_payslip_id', 'payslip_email_logs', ['payslip_id'])

    op.create_table(
        'payment_requests',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('payslip_id', sa.Integer(), sa.ForeignKey('payslips.id', ondelete='RESTRICT'), nullable=False),
        sa.Column('employee_id', sa.Integer(), sa.ForeignKey('employees.id', ondelete='RESTRICT'), nullable=False),
        sa.Column('employee_code', sa.String(length=32), nullable=False),
        sa.Column('employee_name', sa.String(length=160), nullable=False),
        sa.Column('month', sa.Integer(), nullable=False),
        sa.Column('year', sa.Integer(), nullable=False),
        _money('amount', default=None),
        sa.Column('payment_date', sa.Date(), nullable=False),
        sa.Column('payment_method', sa.String(length=20), nullable=False),
        sa.Column('payment_reference', sa.String(length=120), nullable=False),
        sa.Column('bank_account_number', sa.String(length=40), nullable=True),
        sa.Column('bank_ifsc_code', sa.String(length=20), nullable=True),
        sa.Column('bank_name', sa.String(length=120), nullable=True),
        sa.Column('remarks', sa.Text(), nullable=True),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='pending'),
        sa.Column('requested_by_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=True),
        sa.Column('requested_at', sa.DateTime(), nullable=False),
        *_stamp('finance_approved'),
        sa.Column('finance_comments', sa.Text(), nullable=True),
        *_stamp('md_approved'),
        sa.Column('md_comments', sa.Text(), nullable=True),
        *_stamp('processed'),
        *_stamp('rejected'),
        sa.Column('rejection_reason', sa.Text(), nullable=True),
        sa.Column('version', sa.Integer(), nullable=False, server_default='1'),
    )
    op.create_index('ix_payment_requests_payslip_id', 'payment_requests', ['payslip_id'])
    op.create_index('ix_payment_requests_employee_id', 'payment_requests', ['employee_id'])
    op.create_index('ix_payment_requests_status', 'payment_requests', ['status'])
    op.create_index(
        'uq_payment_active_payslip', 'payment_requests', ['payslip_id'], unique=True,
        postgresql_where=sa.text("status <> 'rejected'"),
        sqlite_where=sa.text("status <> 'rejected'"),
    )

    op.create_table(
        'salary_revisions',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('employee_id', sa.Integer(), sa.ForeignKey('employees.id', ondelete='RESTRICT'), nullable=False),
        sa.Column('employee_code', sa.String(length=32), nullable=False),
        sa.Column('employee_name', sa.String(length=160), nullable=False),
        _money('current_salary', default=None),
        _money('new_salary', default=None),
        sa.Column('effective_date', sa.Date(), nullable=False),
        sa.Column('reason', sa.String(length=20), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='pending'),
        sa.Column('requested_by_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=True),
        sa.Column('requested_at', sa.DateTime(), nullable=False),
        *_stamp('hr_approved'),
        sa.Column('hr_comments', sa.Text(), nullable=True),
        *_stamp('finance_approved'),
        sa.Column('finance_comments', sa.Text(), nullable=True),
        *_stamp('md_approved'),
        sa.Column('md_comments', sa.Text(), nullable=True),
        *_stamp('rejected'),
        sa.Column('rejection_reason', sa.Text(), nullable=True),
        *_stamp('implemented'),
        sa.Column('version', sa.Integer(), nullable=False, server_default='1'),
    )
    op.create_index('ix_salary_revisions_employee_id', 'salary_revisions', ['employee_id'])
    op.create_index('ix_salary_revisions_status', 'salary_revisions', ['status'])

    op.create_table(
        'workflow_actions',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('entity_type', sa.String(length=32), nullable=False),
        sa.Column('entity_id', sa.Integer(), nullable=False),
        sa.Column('action', sa.String(length=40), nullable=False),
        sa.Column('from_status', sa.String(length=20), nullable=True),
        sa.Column('to_status', sa.String(length=20), nullable=False),
        sa.Column('comment', sa.Text(), nullable=True),
        sa.Column('acted_by_user_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=True),
        sa.Column('acted_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_workflow_entity', 'workflow_actions', ['entity_type', 'entity_id'])


def downgrade() -> None:
    op.drop_index('ix_workflow_entity', table_name='workflow_actions')
    op.drop_table('workflow_actions')
    op.drop_table('salary_revisions')
    op.drop_index('uq_payment_active_payslip', table_name='payment_requests')
    op.drop_table('payment_requests')
    op.drop_table('payslip_email_logs')
    op.drop_table('payslips')
    op.drop_table('attendance_records')
    op.drop_table('employees')
    op.drop_table('user_roles')
    op.drop_table('roles')
    op.drop_index('ix_users_email', table_name='users')
    op.drop_table('users')
