"""
Módulo de Inventario

Existencias de materiales por empresa. Las recepciones de órdenes de compra
incrementan el stock a través de ``InventoryService.increase_stock``; las
salidas a obra, devoluciones y ajustes se registran como movimientos.
"""
