"""initial payroll schema

Revision ID: 3f1a9c2d7b10
Revises:
Create Date: 2025-06-02 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3f1a9c2d7b10'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('password_hash', sa.String(255), nullable=False),
        sa.Column('full_name', sa.String(255), nullable=False),
        sa.Column('status', sa.String(20)),
        sa.Column('created_at', sa.DateTime()),
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)

    op.create_table(
        'roles',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('code', sa.String(50), nullable=False, unique=True),
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
        sa.Column('code', sa.String(32), nullable=False, unique=True),
        sa.Column('email', sa.String(255), nullable=False, unique=True),
        sa.Column('first_name', sa.String(80), nullable=False),
        sa.Column('last_name', sa.String(80)),
        sa.Column('phone', sa.String(20)),
        sa.Column('date_of_birth', sa.Date()),
        sa.Column('status', sa.String(16), nullable=False, server_default='active'),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )

    op.create_table(
        'employments',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('code', sa.String(32), nullable=False, unique=True),
        sa.Column('employee_id', sa.Integer(), sa.ForeignKey('employees.id', ondelete='RESTRICT'), nullable=False),
        sa.Column('department', sa.String(120)),
        sa.Column('position', sa.String(120)),
        sa.Column('base_salary', sa.Numeric(14, 2), nullable=False),
        sa.Column('status', sa.Enum('ACTIVE', 'INACTIVE', 'TERMINATED', name='employment_status_enum'),
                  nullable=False, server_default='ACTIVE'),
        sa.Column('joining_date', sa.Date()),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_employment_employee_status', 'employments', ['employee_id', 'status'])

    op.create_table(
        'deductions',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('code', sa.String(32), nullable=False, unique=True),
        sa.Column('name', sa.String(120), nullable=False, unique=True),
        sa.Column('percentage', sa.Numeric(7, 2), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime()),
    )

    op.create_table(
        'payslips',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('employee_id', sa.Integer(), sa.ForeignKey('employees.id', ondelete='RESTRICT'), nullable=False),
        sa.Column('month', sa.Integer(), nullable=False),
        sa.Column('year', sa.Integer(), nullable=False),
        sa.Column('base_salary', sa.Numeric(14, 2), nullable=False, server_default='0'),
        sa.Column('housing_amount', sa.Numeric(14, 2), nullable=False, server_default='0'),
        sa.Column('transport_amount', sa.Numeric(14, 2), nullable=False, server_default='0'),
        sa.Column('employee_tax_amount', sa.Numeric(14, 2), nullable=False, server_default='0'),
        sa.Column('pension_amount', sa.Numeric(14, 2), nullable=False, server_default='0'),
        sa.Column('medical_insurance_amount', sa.Numeric(14, 2), nullable=False, server_default='0'),
        sa.Column('other_deductions', sa.Numeric(14, 2), nullable=False, server_default='0'),
        sa.Column('gross_salary', sa.Numeric(14, 2), nullable=False, server_default='0'),
        sa.Column('net_salary', sa.Numeric(14, 2), nullable=False, server_default='0'),
        sa.Column('status', sa.Enum('PENDING', 'PAID', name='payslip_status_enum'),
                  nullable=False, server_default='PENDING'),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime()),
        sa.UniqueConstraint('employee_id', 'month', 'year', name='uq_payslip_employee_period'),
    )
    op.create_index('ix_payslips_employee_id', 'payslips', ['employee_id'])
    op.create_index('ix_payslip_period_status', 'payslips', ['year', 'month', 'status'])

    op.create_table(
        'messages',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('employee_id', sa.Integer(), sa.ForeignKey('employees.id', ondelete='CASCADE'), nullable=False),
        sa.Column('payslip_id', sa.Integer(), sa.ForeignKey('payslips.id', ondelete='SET NULL'), nullable=True),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('month_year', sa.String(10), nullable=False),
        sa.Column('sent_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_messages_employee_id', 'messages', ['employee_id'])


def downgrade() -> None:
    op.drop_index('ix_messages_employee_id', table_name='messages')
    op.drop_table('messages')
    op.drop_index('ix_payslip_period_status', table_name='payslips')
    op.drop_index('ix_payslips_employee_id', table_name='payslips')
    op.drop_table('payslips')
    op.drop_table('deductions')
    op.drop_index('ix_employment_employee_status', table_name='employments')
    op.drop_table('employments')
    op.drop_table('employees')
    op.drop_table('user_roles')
    op.drop_table('roles')
    op.drop_index('ix_users_email', table_name='users')
    op.drop_table('users')
    sa.Enum(name='payslip_status_enum').drop(op.get_bind(), checkfirst=True)
    sa.Enum(name='employment_status_enum').drop(op.get_bind(), checkfirst=True)
