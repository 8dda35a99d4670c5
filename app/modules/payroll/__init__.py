"""
Módulo de Nómina

Empleados con salario diario y periodos de nómina (semanales, quincenales
o mensuales), opcionalmente ligados a una obra. Cada detalle paga
días trabajados × salario diario + extras − deducciones; el total del
periodo es la suma exacta de los detalles.
"""
