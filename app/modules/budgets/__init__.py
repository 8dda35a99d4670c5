"""
Módulo de Presupuestos

Catálogo de conceptos (clave, unidad, cantidad, precio unitario) por versión
de presupuesto de una obra. Sólo una versión por obra es la vigente y contra
ella se capturan las estimaciones.
"""
