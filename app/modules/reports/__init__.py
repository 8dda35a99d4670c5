"""
Módulo de Reportes

No crea tablas: consulta las de obras, estimaciones, compras, tesorería e
inventario para generar el tablero de la empresa y los reportes de cuentas
por cobrar y por pagar (con exportación CSV).

Architecture Pattern: Service Layer
- routers/ -> Endpoints FastAPI
- services/ -> Consultas por empresa
- schemas/ -> Modelos Pydantic de respuesta
- utils/ -> Exportación CSV
"""
