"""
Módulo de Contabilidad

Catálogo de cuentas contables y pólizas (DIARIO, INGRESO, EGRESO). Una
póliza tiene al menos dos movimientos y su debe cuadra exactamente con su
haber. El folio es consecutivo por empresa y tipo de póliza.
"""
