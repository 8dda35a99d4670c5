"""
Módulo de Obras (Work Orders)

Una obra es el contrato de construcción al que se ligan presupuestos,
estimaciones, órdenes de compra y salidas de almacén. Define los
porcentajes de anticipo y retención usados en cada estimación.
"""
