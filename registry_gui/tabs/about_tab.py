from __future__ import annotations

from PySide6.QtCore import Qt
from PySide6.QtWidgets import QLabel, QVBoxLayout, QWidget

_ABOUT_TEXT = """
<h2>Registro Comunitario</h2>
<p>Cliente de escritorio para el registro municipal de servicios comunitarios:
personas mayores, organizaciones, actividades, viajes y unidades vecinales.</p>
<ul>
<li><b>Dashboard</b>: totales y distribución de personas por macrosector.</li>
<li><b>Consultas</b>: búsqueda filtrada de registros.</li>
<li><b>Inserciones</b>: alta de registros y tablas de referencia.</li>
</ul>
<p>La configuración de conexión se guarda en <code>db_config.json</code>
junto al programa.</p>
"""


class AboutTab(QWidget):
    """Static information page."""

    def __init__(self) -> None:
        super().__init__()
        layout = QVBoxLayout(self)
        layout.setContentsMargins(12, 12, 12, 12)
        label = QLabel(_ABOUT_TEXT)
        label.setTextFormat(Qt.RichText)
        label.setWordWrap(True)
        label.setAlignment(Qt.AlignTop | Qt.AlignLeft)
        layout.addWidget(label)
        layout.addStretch(1)
