"""
Módulo de Estimaciones (avance de obra)

Cada estimación cobra las cantidades ejecutadas en un periodo contra los
conceptos del presupuesto vigente de la obra.

CICLO DE VIDA:
- DRAFT → PENDING → APPROVED → INVOICED
- CANCELLED desde DRAFT, PENDING o APPROVED
- INVOICED es terminal; sólo se capturan conceptos en DRAFT

TOTALES:
- gross_amount = Σ importe de conceptos
- amortization = gross_amount × anticipo de la obra
- retention = gross_amount × retención de la obra
- net_amount = gross_amount − amortization − retention
"""
