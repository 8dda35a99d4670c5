"""
Módulo de Maquinaria

Equipo propio de la empresa y su asignación a obras. Una máquina sólo
sale a obra estando DISPONIBLE y regresa a DISPONIBLE al cerrar la
asignación; el horómetro nunca retrocede.
"""
