"""initial

Esquema inicial: empresas y usuarios, obras, presupuestos, estimaciones,
compras, almacén, tesorería, contabilidad, nómina y maquinaria.

Revision ID: 0001_initial
Revises:
Create Date: 2025-06-02 10:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '0001_initial'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


work_order_status = sa.Enum(
    'QUOTE', 'CONTRACTED', 'IN_PROGRESS', 'SUSPENDED', 'FINISHED', 'CANCELLED', name='workorderstatus'
)
billing_period_status = sa.Enum(
    'DRAFT', 'PENDING', 'APPROVED', 'INVOICED', 'CANCELLED', name='billingperiodstatus'
)
purchase_order_status = sa.Enum(
    'DRAFT', 'SENT', 'PARTIAL', 'COMPLETE', 'CANCELLED', name='purchaseorderstatus'
)
movement_type = sa.Enum(
    'COMPRA', 'ENTRADA', 'SALIDA_OBRA', 'DEVOLUCION_OBRA', 'AJUSTE_POSITIVO', 'AJUSTE_NEGATIVO',
    name='movementtype'
)
transaction_kind = sa.Enum('INCOME', 'EXPENSE', name='transactionkind')
ledger_account_type = sa.Enum('ACTIVO', 'PASIVO', 'CAPITAL', 'INGRESOS', 'EGRESOS', name='ledgeraccounttype')
journal_entry_kind = sa.Enum('DIARIO', 'INGRESO', 'EGRESO', name='journalentrykind')
payroll_period_type = sa.Enum('SEMANAL', 'QUINCENAL', 'MENSUAL', name='payrollperiodtype')
payroll_period_status = sa.Enum('DRAFT', 'CLOSED', 'PAID', name='payrollperiodstatus')
machine_status = sa.Enum(
    'DISPONIBLE', 'EN_OBRA', 'MANTENIMIENTO', 'REPARACION', 'BAJA', name='machinestatus'
)

ENUMS = [
    work_order_status, billing_period_status, purchase_order_status, movement_type, transaction_kind,
    ledger_account_type, journal_entry_kind, payroll_period_type, payroll_period_status, machine_status,
]

# Tablas con tenant_id, en orden de creación
TENANT_TABLES = [
    'obras', 'presupuestos', 'conceptos_presupuesto', 'estimaciones', 'conceptos_estimacion',
    'proveedores', 'productos', 'ordenes_compra', 'detalles_orden_compra', 'recepciones_compra',
    'detalles_recepcion_compra', 'movimientos_inventario', 'cuentas_bancarias', 'transacciones',
    'cuentas_contables', 'polizas', 'movimientos_poliza', 'empleados', 'periodos_nomina',
    'detalles_nomina', 'maquinaria', 'asignaciones_maquinaria',
]

# (tabla, columna) con índice simple
INDEXES = [
    ('obras', 'status'),
    ('presupuestos', 'work_order_id'),
    ('conceptos_presupuesto', 'budget_version_id'),
    ('estimaciones', 'work_order_id'),
    ('estimaciones', 'status'),
    ('conceptos_estimacion', 'billing_period_id'),
    ('conceptos_estimacion', 'budget_line_id'),
    ('productos', 'id'),
    ('ordenes_compra', 'supplier_id'),
    ('ordenes_compra', 'work_order_id'),
    ('ordenes_compra', 'status'),
    ('detalles_orden_compra', 'purchase_order_id'),
    ('detalles_orden_compra', 'product_id'),
    ('recepciones_compra', 'purchase_order_id'),
    ('detalles_recepcion_compra', 'receipt_id'),
    ('movimientos_inventario', 'id'),
    ('movimientos_inventario', 'product_id'),
    ('transacciones', 'account_id'),
    ('transacciones', 'purchase_order_id'),
    ('transacciones', 'billing_period_id'),
    ('movimientos_poliza', 'entry_id'),
    ('movimientos_poliza', 'ledger_account_id'),
    ('periodos_nomina', 'work_order_id'),
    ('periodos_nomina', 'status'),
    ('detalles_nomina', 'payroll_period_id'),
    ('detalles_nomina', 'employee_id'),
    ('maquinaria', 'status'),
    ('asignaciones_maquinaria', 'machine_id'),
    ('asignaciones_maquinaria', 'work_order_id'),
]


def _id():
    return sa.Column('id', sa.Uuid(), nullable=False)


def _tenant():
    return sa.Column('tenant_id', sa.Uuid(), nullable=False)


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
    ]


def _money(name, nullable=False):
    return sa.Column(name, sa.Numeric(precision=15, scale=2), nullable=nullable)


def _quantity(name):
    return sa.Column(name, sa.Numeric(precision=14, scale=4), nullable=False)


def upgrade() -> None:
    # ===== EMPRESAS Y USUARIOS =====
    op.create_table(
        'companies',
        _id(),
        sa.Column('name', sa.String(length=200), nullable=False),
        sa.Column('rfc', sa.String(length=13), nullable=True),
        sa.Column('social_reason', sa.String(), nullable=True),
        sa.Column('address', sa.String(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('rfc'),
    )
    op.create_index(op.f('ix_companies_id'), 'companies', ['id'], unique=False)
    op.create_index(op.f('ix_companies_name'), 'companies', ['name'], unique=True)

    op.create_table(
        'users',
        _id(),
        sa.Column('auth_id', sa.String(length=100), nullable=False),
        sa.Column('email', sa.String(), nullable=False),
        sa.Column('full_name', sa.String(length=200), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('email'),
    )
    op.create_index(op.f('ix_users_auth_id'), 'users', ['auth_id'], unique=True)

    op.create_table(
        'user_companies',
        _id(),
        sa.Column('user_id', sa.Uuid(), nullable=False),
        sa.Column('company_id', sa.Uuid(), nullable=False),
        sa.Column('role', sa.String(length=20), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=True),
        sa.Column('joined_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['company_id'], ['companies.id']),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id', 'company_id', name='uq_user_company'),
    )

    # ===== OBRAS Y PRESUPUESTOS =====
    op.create_table(
        'obras',
        _id(),
        _tenant(),
        sa.Column('code', sa.String(length=50), nullable=False),
        sa.Column('name', sa.String(length=200), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('client_name', sa.String(length=200), nullable=True),
        sa.Column('status', work_order_status, nullable=False),
        sa.Column('start_date', sa.Date(), nullable=True),
        sa.Column('end_date', sa.Date(), nullable=True),
        _money('contract_amount'),
        sa.Column('advance_pct', sa.Numeric(precision=5, scale=2), nullable=False),
        sa.Column('retention_pct', sa.Numeric(precision=5, scale=2), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('tenant_id', 'code', name='uq_obra_tenant_code'),
        sa.CheckConstraint('advance_pct + retention_pct <= 100', name='ck_obra_deducciones'),
    )

    op.create_table(
        'presupuestos',
        _id(),
        _tenant(),
        sa.Column('work_order_id', sa.Uuid(), nullable=False),
        sa.Column('version', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=200), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('is_current', sa.Boolean(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(['work_order_id'], ['obras.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('work_order_id', 'version', name='uq_presupuesto_obra_version'),
    )
    # A lo más un presupuesto vigente por obra
    op.create_index(
        'uq_presupuesto_vigente', 'presupuestos', ['work_order_id'], unique=True,
        postgresql_where=sa.text('is_current'),
        sqlite_where=sa.text('is_current'),
    )

    op.create_table(
        'conceptos_presupuesto',
        _id(),
        _tenant(),
        sa.Column('budget_version_id', sa.Uuid(), nullable=False),
        sa.Column('key', sa.String(length=50), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('unit', sa.String(length=20), nullable=False),
        _quantity('quantity'),
        _money('unit_price'),
        sa.Column('amount', sa.Numeric(precision=20, scale=6), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(['budget_version_id'], ['presupuestos.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('budget_version_id', 'key', name='uq_concepto_presupuesto_clave'),
    )

    # ===== ESTIMACIONES =====
    op.create_table(
        'estimaciones',
        _id(),
        _tenant(),
        sa.Column('work_order_id', sa.Uuid(), nullable=False),
        sa.Column('budget_version_id', sa.Uuid(), nullable=False),
        sa.Column('number', sa.Integer(), nullable=False),
        sa.Column('period', sa.String(length=100), nullable=False),
        sa.Column('cutoff_date', sa.Date(), nullable=False),
        sa.Column('status', billing_period_status, nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        _money('gross_amount'),
        _money('amortization'),
        _money('retention'),
        _money('net_amount'),
        _money('paid'),
        sa.Column('submitted_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('approved_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('invoiced_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['budget_version_id'], ['presupuestos.id']),
        sa.ForeignKeyConstraint(['work_order_id'], ['obras.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('work_order_id', 'number', name='uq_estimacion_obra_numero'),
    )

    op.create_table(
        'conceptos_estimacion',
        _id(),
        _tenant(),
        sa.Column('billing_period_id', sa.Uuid(), nullable=False),
        sa.Column('budget_line_id', sa.Uuid(), nullable=False),
        _quantity('executed_quantity'),
        _quantity('cumulative_quantity'),
        _money('unit_price'),
        sa.Column('amount', sa.Numeric(precision=20, scale=6), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(['billing_period_id'], ['estimaciones.id']),
        sa.ForeignKeyConstraint(['budget_line_id'], ['conceptos_presupuesto.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('billing_period_id', 'budget_line_id', name='uq_concepto_estimacion'),
    )

    # ===== COMPRAS Y ALMACÉN =====
    op.create_table(
        'proveedores',
        _id(),
        _tenant(),
        sa.Column('name', sa.String(length=200), nullable=False),
        sa.Column('rfc', sa.String(length=13), nullable=True),
        sa.Column('email', sa.String(length=100), nullable=True),
        sa.Column('phone', sa.String(length=50), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
    )

    op.create_table(
        'productos',
        _id(),
        _tenant(),
        sa.Column('sku', sa.String(length=50), nullable=False),
        sa.Column('name', sa.String(length=200), nullable=False),
        sa.Column('unit', sa.String(length=20), nullable=False),
        _quantity('stock'),
        _quantity('min_stock'),
        _money('last_purchase_price', nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('tenant_id', 'sku', name='uq_producto_tenant_sku'),
    )

    op.create_table(
        'ordenes_compra',
        _id(),
        _tenant(),
        sa.Column('folio', sa.Integer(), nullable=False),
        sa.Column('supplier_id', sa.Uuid(), nullable=False),
        sa.Column('work_order_id', sa.Uuid(), nullable=True),
        sa.Column('issue_date', sa.Date(), nullable=False),
        sa.Column('expected_date', sa.Date(), nullable=True),
        sa.Column('status', purchase_order_status, nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        _money('subtotal'),
        _money('tax'),
        _money('total'),
        _money('paid'),
        sa.Column('created_by', sa.Uuid(), nullable=True),
        sa.Column('sent_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['created_by'], ['users.id']),
        sa.ForeignKeyConstraint(['supplier_id'], ['proveedores.id']),
        sa.ForeignKeyConstraint(['work_order_id'], ['obras.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('tenant_id', 'folio', name='uq_orden_compra_folio'),
    )

    op.create_table(
        'detalles_orden_compra',
        _id(),
        _tenant(),
        sa.Column('purchase_order_id', sa.Uuid(), nullable=False),
        sa.Column('product_id', sa.Uuid(), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False),
        sa.Column('description', sa.String(length=200), nullable=False),
        sa.Column('unit', sa.String(length=20), nullable=False),
        _quantity('quantity_ordered'),
        _quantity('quantity_received'),
        _money('unit_price'),
        sa.Column('amount', sa.Numeric(precision=20, scale=6), nullable=False),
        sa.ForeignKeyConstraint(['product_id'], ['productos.id']),
        sa.ForeignKeyConstraint(['purchase_order_id'], ['ordenes_compra.id']),
        sa.PrimaryKeyConstraint('id'),
    )

    op.create_table(
        'recepciones_compra',
        _id(),
        _tenant(),
        sa.Column('purchase_order_id', sa.Uuid(), nullable=False),
        sa.Column('received_by', sa.Uuid(), nullable=True),
        sa.Column('received_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(['purchase_order_id'], ['ordenes_compra.id']),
        sa.ForeignKeyConstraint(['received_by'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
    )

    op.create_table(
        'detalles_recepcion_compra',
        _id(),
        _tenant(),
        sa.Column('receipt_id', sa.Uuid(), nullable=False),
        sa.Column('order_line_id', sa.Uuid(), nullable=False),
        _quantity('quantity'),
        sa.ForeignKeyConstraint(['order_line_id'], ['detalles_orden_compra.id']),
        sa.ForeignKeyConstraint(['receipt_id'], ['recepciones_compra.id']),
        sa.PrimaryKeyConstraint('id'),
    )

    op.create_table(
        'movimientos_inventario',
        _id(),
        _tenant(),
        sa.Column('product_id', sa.Uuid(), nullable=False),
        sa.Column('movement_type', movement_type, nullable=False),
        _quantity('quantity'),
        _quantity('stock_after'),
        _money('unit_cost', nullable=True),
        sa.Column('work_order_id', sa.Uuid(), nullable=True),
        sa.Column('reference', sa.String(length=100), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_by', sa.Uuid(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.ForeignKeyConstraint(['created_by'], ['users.id']),
        sa.ForeignKeyConstraint(['product_id'], ['productos.id']),
        sa.ForeignKeyConstraint(['work_order_id'], ['obras.id']),
        sa.PrimaryKeyConstraint('id'),
    )

    # ===== TESORERÍA =====
    op.create_table(
        'cuentas_bancarias',
        _id(),
        _tenant(),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('bank', sa.String(length=100), nullable=True),
        sa.Column('account_number', sa.String(length=30), nullable=True),
        sa.Column('clabe', sa.String(length=18), nullable=True),
        sa.Column('currency', sa.String(length=3), nullable=False),
        _money('balance'),
        sa.Column('is_active', sa.Boolean(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
    )

    op.create_table(
        'transacciones',
        _id(),
        _tenant(),
        sa.Column('account_id', sa.Uuid(), nullable=False),
        sa.Column('kind', transaction_kind, nullable=False),
        _money('amount'),
        _money('balance_after'),
        sa.Column('transaction_date', sa.Date(), nullable=False),
        sa.Column('description', sa.String(length=255), nullable=True),
        sa.Column('reference', sa.String(length=100), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('purchase_order_id', sa.Uuid(), nullable=True),
        sa.Column('billing_period_id', sa.Uuid(), nullable=True),
        sa.Column('created_by', sa.Uuid(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.ForeignKeyConstraint(['account_id'], ['cuentas_bancarias.id']),
        sa.ForeignKeyConstraint(['billing_period_id'], ['estimaciones.id']),
        sa.ForeignKeyConstraint(['created_by'], ['users.id']),
        sa.ForeignKeyConstraint(['purchase_order_id'], ['ordenes_compra.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint('amount > 0', name='ck_transaccion_monto_positivo'),
        sa.CheckConstraint(
            'purchase_order_id IS NULL OR billing_period_id IS NULL', name='ck_transaccion_un_documento'
        ),
    )

    # ===== CONTABILIDAD =====
    op.create_table(
        'cuentas_contables',
        _id(),
        _tenant(),
        sa.Column('code', sa.String(length=30), nullable=False),
        sa.Column('name', sa.String(length=200), nullable=False),
        sa.Column('account_type', ledger_account_type, nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('tenant_id', 'code', name='uq_cuenta_contable_codigo'),
    )

    op.create_table(
        'polizas',
        _id(),
        _tenant(),
        sa.Column('kind', journal_entry_kind, nullable=False),
        sa.Column('folio', sa.Integer(), nullable=False),
        sa.Column('entry_date', sa.Date(), nullable=False),
        sa.Column('concept', sa.Text(), nullable=False),
        _money('total_debit'),
        _money('total_credit'),
        sa.Column('created_by', sa.Uuid(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['created_by'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('tenant_id', 'kind', 'folio', name='uq_poliza_tipo_folio'),
    )

    op.create_table(
        'movimientos_poliza',
        _id(),
        _tenant(),
        sa.Column('entry_id', sa.Uuid(), nullable=False),
        sa.Column('ledger_account_id', sa.Uuid(), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False),
        sa.Column('description', sa.String(length=255), nullable=True),
        _money('debit'),
        _money('credit'),
        sa.ForeignKeyConstraint(['entry_id'], ['polizas.id']),
        sa.ForeignKeyConstraint(['ledger_account_id'], ['cuentas_contables.id']),
        sa.PrimaryKeyConstraint('id'),
    )

    # ===== NÓMINA =====
    op.create_table(
        'empleados',
        _id(),
        _tenant(),
        sa.Column('name', sa.String(length=200), nullable=False),
        sa.Column('position', sa.String(length=100), nullable=True),
        _money('daily_wage'),
        sa.Column('phone', sa.String(length=50), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
    )

    op.create_table(
        'periodos_nomina',
        _id(),
        _tenant(),
        sa.Column('period_type', payroll_period_type, nullable=False),
        sa.Column('year', sa.Integer(), nullable=False),
        sa.Column('week', sa.Integer(), nullable=True),
        sa.Column('fortnight', sa.Integer(), nullable=True),
        sa.Column('month', sa.Integer(), nullable=True),
        sa.Column('start_date', sa.Date(), nullable=False),
        sa.Column('end_date', sa.Date(), nullable=False),
        sa.Column('work_order_id', sa.Uuid(), nullable=True),
        sa.Column('status', payroll_period_status, nullable=False),
        _money('total'),
        sa.Column('closed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('paid_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['work_order_id'], ['obras.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint('end_date >= start_date', name='ck_periodo_nomina_fechas'),
    )

    op.create_table(
        'detalles_nomina',
        _id(),
        _tenant(),
        sa.Column('payroll_period_id', sa.Uuid(), nullable=False),
        sa.Column('employee_id', sa.Uuid(), nullable=False),
        sa.Column('days_worked', sa.Numeric(precision=5, scale=2), nullable=False),
        _money('daily_wage'),
        _money('base_amount'),
        _money('extras'),
        _money('deductions'),
        _money('total_pay'),
        sa.Column('notes', sa.Text(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['employee_id'], ['empleados.id']),
        sa.ForeignKeyConstraint(['payroll_period_id'], ['periodos_nomina.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('payroll_period_id', 'employee_id', name='uq_detalle_nomina_empleado'),
        sa.CheckConstraint('total_pay >= 0', name='ck_detalle_nomina_total'),
    )

    # ===== MAQUINARIA =====
    op.create_table(
        'maquinaria',
        _id(),
        _tenant(),
        sa.Column('code', sa.String(length=50), nullable=False),
        sa.Column('description', sa.String(length=200), nullable=False),
        sa.Column('brand', sa.String(length=100), nullable=True),
        sa.Column('model', sa.String(length=100), nullable=True),
        sa.Column('serial_number', sa.String(length=100), nullable=True),
        sa.Column('year', sa.Integer(), nullable=True),
        sa.Column('status', machine_status, nullable=False),
        _money('hourly_cost', nullable=True),
        _money('daily_rent', nullable=True),
        sa.Column('hour_meter', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('location', sa.String(length=200), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('tenant_id', 'code', name='uq_maquinaria_codigo'),
    )

    op.create_table(
        'asignaciones_maquinaria',
        _id(),
        _tenant(),
        sa.Column('machine_id', sa.Uuid(), nullable=False),
        sa.Column('work_order_id', sa.Uuid(), nullable=False),
        sa.Column('start_date', sa.Date(), nullable=False),
        sa.Column('end_date', sa.Date(), nullable=True),
        sa.Column('hour_meter_start', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('hour_meter_end', sa.Numeric(precision=12, scale=2), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['machine_id'], ['maquinaria.id']),
        sa.ForeignKeyConstraint(['work_order_id'], ['obras.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint(
            'hour_meter_end IS NULL OR hour_meter_end >= hour_meter_start', name='ck_asignacion_horometro'
        ),
    )
    # A lo más una asignación activa por equipo
    op.create_index(
        'uq_asignacion_activa', 'asignaciones_maquinaria', ['machine_id'], unique=True,
        postgresql_where=sa.text('is_active'),
        sqlite_where=sa.text('is_active'),
    )

    for table in TENANT_TABLES:
        op.create_index(op.f(f'ix_{table}_tenant_id'), table, ['tenant_id'], unique=False)
    for table, column in INDEXES:
        op.create_index(op.f(f'ix_{table}_{column}'), table, [column], unique=False)


def downgrade() -> None:
    for table, column in reversed(INDEXES):
        op.drop_index(op.f(f'ix_{table}_{column}'), table_name=table)
    for table in reversed(TENANT_TABLES):
        op.drop_index(op.f(f'ix_{table}_tenant_id'), table_name=table)
    op.drop_index('uq_asignacion_activa', table_name='asignaciones_maquinaria')
    op.drop_index('uq_presupuesto_vigente', table_name='presupuestos')

    for table in reversed(TENANT_TABLES):
        op.drop_table(table)
    op.drop_table('user_companies')
    op.drop_index(op.f('ix_users_auth_id'), table_name='users')
    op.drop_table('users')
    op.drop_index(op.f('ix_companies_name'), table_name='companies')
    op.drop_index(op.f('ix_companies_id'), table_name='companies')
    op.drop_table('companies')

    bind = op.get_bind()
    for enum_type in reversed(ENUMS):
        enum_type.drop(bind, checkfirst=True)
