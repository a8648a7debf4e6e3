from __future__ import annotations

import sys
from typing import List, Optional

from PySide6 import QtCore, QtGui, QtWidgets

from .assess import scan
from .config import Settings, load_settings
from .formatting import format_bytes, format_power_on_hours, format_temperature, temperature_class
from .models import DeviceReport, RiskTier
from .report import write_csv, write_json


COLUMNS = [
    "Device",
    "Model",
    "Serial",
    "Size",
    "Type",
    "Temp (C)",
    "Power-On",
    "Risk",
    "Warnings",
    "Replace In",
    "Confidence",
    "Method",
]

TIMELINE_COLORS = {
    "critical": QtCore.Qt.GlobalColor.red,
    "warning": QtCore.Qt.GlobalColor.darkRed,
    "caution": QtCore.Qt.GlobalColor.darkYellow,
    "normal": QtCore.Qt.GlobalColor.black,
    "healthy": QtCore.Qt.GlobalColor.darkGreen,
}

TEMPERATURE_COLORS = {
    "critical": QtCore.Qt.GlobalColor.red,
    "high": QtCore.Qt.GlobalColor.darkRed,
    "elevated": QtCore.Qt.GlobalColor.darkYellow,
    "normal": QtCore.Qt.GlobalColor.darkGreen,
}


class MainWindow(QtWidgets.QMainWindow):
    def __init__(self, settings: Optional[Settings] = None) -> None:
        super().__init__()
        self.settings = settings or Settings()
        self.setWindowTitle("Disk Risk")
        self.resize(1100, 540)

        self.status_label = QtWidgets.QLabel("")
        self.scan_button = QtWidgets.QPushButton("Scan")
        self.scan_button.clicked.connect(self.scan)
        self.export_json_button = QtWidgets.QPushButton("Export JSON")
        self.export_json_button.clicked.connect(self.export_json)
        self.export_csv_button = QtWidgets.QPushButton("Export CSV")
        self.export_csv_button.clicked.connect(self.export_csv)
        self._last_reports: List[DeviceReport] = []

        header = QtWidgets.QHBoxLayout()
        header.addWidget(self.scan_button)
        header.addWidget(self.export_json_button)
        header.addWidget(self.export_csv_button)
        header.addStretch(1)
        header.addWidget(self.status_label)

        self.tree = QtWidgets.QTreeWidget()
        self.tree.setColumnCount(len(COLUMNS))
        self.tree.setHeaderLabels(COLUMNS)
        self.tree.setAlternatingRowColors(True)

        root = QtWidgets.QWidget()
        layout = QtWidgets.QVBoxLayout(root)
        layout.addLayout(header)
        layout.addWidget(self.tree)
        self.setCentralWidget(root)

        self._set_status(f"Ready ({self.settings.mode.value} mode)")

    def _set_status(self, text: str) -> None:
        self.status_label.setText(text)

    def scan(self) -> None:
        self.tree.clear()
        self._set_status("Scanning...")
        try:
            reports = scan(self.settings)
        except RuntimeError as exc:
            self._set_status(f"Disk scan failed: {exc}")
            return

        for report in reports:
            self.tree.addTopLevelItem(self._item_for(report))
        self.tree.expandAll()
        self._last_reports = reports
        self._set_status(f"Done, {len(reports)} device(s)")

    def _item_for(self, report: DeviceReport) -> QtWidgets.QTreeWidgetItem:
        record = report.record
        estimate = report.estimate
        item = QtWidgets.QTreeWidgetItem(
            [
                record.device,
                record.model or "",
                record.serial or "",
                format_bytes(record.capacity_bytes),
                record.device_family.value,
                format_temperature(record.temperature_c),
                format_power_on_hours(record.power_on_hours),
                report.tier_label,
                "; ".join(w.message for w in report.warnings),
                estimate.timeline_label,
                estimate.confidence.value,
                estimate.method,
            ]
        )
        color = self.settings.color_for(report.tier)
        if color is not None:
            item.setBackground(COLUMNS.index("Risk"), QtGui.QBrush(QtGui.QColor(color)))
        temp_color = TEMPERATURE_COLORS.get(temperature_class(record.temperature_c))
        if temp_color is not None:
            item.setForeground(COLUMNS.index("Temp (C)"), temp_color)
        if report.tier is RiskTier.HIGH:
            font = item.font(0)
            font.setBold(True)
            for col in range(len(COLUMNS)):
                item.setFont(col, font)
        timeline_color = TIMELINE_COLORS.get(estimate.timeline_severity_class)
        if timeline_color is not None:
            item.setForeground(COLUMNS.index("Replace In"), timeline_color)
        tooltip = "\n".join(
            f"{w.message}: {w.recommended_action}. {w.tooltip}" for w in report.warnings
        )
        if tooltip:
            item.setToolTip(COLUMNS.index("Warnings"), tooltip)
        item.setToolTip(COLUMNS.index("Replace In"), estimate.explanation)
        return item

    def export_json(self) -> None:
        if not self._last_reports:
            self._set_status("Nothing to export. Run Scan first.")
            return
        path, _ = QtWidgets.QFileDialog.getSaveFileName(
            self, "Export JSON", "disk_risk_report.json", "JSON Files (*.json)"
        )
        if not path:
            return
        try:
            write_json(self._last_reports, path)
            self._set_status(f"Exported: {path}")
        except OSError as exc:
            self._set_status(f"Export failed: {exc}")

    def export_csv(self) -> None:
        if not self._last_reports:
            self._set_status("Nothing to export. Run Scan first.")
            return
        path, _ = QtWidgets.QFileDialog.getSaveFileName(
            self, "Export CSV", "disk_risk_report.csv", "CSV Files (*.csv)"
        )
        if not path:
            return
        try:
            write_csv(self._last_reports, path)
            self._set_status(f"Exported: {path}")
        except OSError as exc:
            self._set_status(f"Export failed: {exc}")


def main() -> None:
    config = sys.argv[1] if len(sys.argv) > 1 else None
    app = QtWidgets.QApplication(sys.argv)
    win = MainWindow(load_settings(config))
    win.show()
    sys.exit(app.exec())
