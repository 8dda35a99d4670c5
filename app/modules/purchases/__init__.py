"""
Módulo de Compras

ENTIDADES PRINCIPALES:
- Suppliers: Proveedores (catálogo de referencia)
- PurchaseOrders: Órdenes de compra con folio consecutivo por empresa
- PurchaseReceipts: Recepciones parciales o totales de una orden

CICLO DE VIDA DE LA ORDEN:
- DRAFT → SENT → PARTIAL ⇄ recepciones → COMPLETE
- CANCELLED sólo desde DRAFT
- Sólo se recibe material en SENT o PARTIAL

INTEGRACIÓN CON INVENTARIO:
- Cada recepción incrementa la existencia del producto y registra un
  movimiento COMPRA, dentro de la misma transacción que la recepción

INTEGRACIÓN CON TESORERÍA:
- Los egresos aplicados a una orden incrementan ``paid``; el saldo
  pendiente es ``total − paid`` y nunca puede quedar negativo
"""
