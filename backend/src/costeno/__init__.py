"""costeno

Backend del Dashboard de ventas: motor de selección/clasificación de rangos
de fechas y estado de sesión del Dashboard.
"""
