"""
Login page.

Purpose
-------
- Collect connection parameters and start a background connect.
- Show connection errors inline above the form.
"""

from __future__ import annotations

from PySide6.QtCore import Qt
from PySide6.QtWidgets import (
    QFormLayout,
    QGroupBox,
    QLabel,
    QLineEdit,
    QPushButton,
    QVBoxLayout,
    QWidget,
)

from registry_gui.controllers.login import LoginController


class LoginTab(QWidget):
    """
    Connection form bound to a LoginController.

    Notes
    -----
    Edits are pushed into the controller's form as they happen. `render()`
    only refreshes the error line and the busy state.
    """

    def __init__(self, controller: LoginController) -> None:
        super().__init__()
        self._c = controller

        outer = QVBoxLayout(self)
        outer.addStretch(1)

        box = QGroupBox("Conexión a la base de datos")
        box.setMaximumWidth(420)
        box_layout = QVBoxLayout(box)

        self.error_label = QLabel("")
        self.error_label.setWordWrap(True)
        self.error_label.setStyleSheet("color: #c0392b;")
        self.error_label.setVisible(False)
        box_layout.addWidget(self.error_label)

        form = QFormLayout()
        f = controller.form
        self.host_edit = QLineEdit(f.host)
        self.port_edit = QLineEdit(f.port)
        self.user_edit = QLineEdit(f.username)
        self.password_edit = QLineEdit(f.password)
        self.password_edit.setEchoMode(QLineEdit.Password)
        self.database_edit = QLineEdit(f.database)

        form.addRow("Host:", self.host_edit)
        form.addRow("Puerto:", self.port_edit)
        form.addRow("Usuario:", self.user_edit)
        form.addRow("Contraseña:", self.password_edit)
        form.addRow("Base de datos:", self.database_edit)
        box_layout.addLayout(form)

        self.btn_connect = QPushButton("Conectar")
        self.btn_connect.clicked.connect(self._connect)
        self.password_edit.returnPressed.connect(self._connect)
        box_layout.addWidget(self.btn_connect)

        outer.addWidget(box, 0, Qt.AlignHCenter)
        outer.addStretch(2)

        self.host_edit.textChanged.connect(lambda v: setattr(self._c.form, "host", v))
        self.port_edit.textChanged.connect(lambda v: setattr(self._c.form, "port", v))
        self.user_edit.textChanged.connect(lambda v: setattr(self._c.form, "username", v))
        self.password_edit.textChanged.connect(lambda v: setattr(self._c.form, "password", v))
        self.database_edit.textChanged.connect(lambda v: setattr(self._c.form, "database", v))

    def _connect(self) -> None:
        self._c.connect()
        self.render()

    def render(self) -> None:
        error = self._c.error
        self.error_label.setText(error or "")
        self.error_label.setVisible(bool(error))

        busy = self._c.connecting
        self.btn_connect.setEnabled(not busy)
        self.btn_connect.setText("Conectando…" if busy else "Conectar")
