"""
Módulo de Tesorería

Cuentas bancarias y transacciones (ingresos y egresos). El saldo de una
cuenta sólo cambia al aplicar una transacción. Un egreso puede aplicarse a
una orden de compra y un ingreso a una estimación facturada; en ambos casos
se incrementa ``paid`` del documento sin exceder su saldo pendiente.
"""
