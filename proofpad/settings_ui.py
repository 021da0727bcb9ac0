"""Settings window (Qt) for Proofpad."""
import logging
import threading
from PyQt5.QtWidgets import (
    QMainWindow, QWidget, QVBoxLayout, QHBoxLayout,
    QGroupBox, QLabel, QCheckBox, QLineEdit, QSpinBox,
    QPushButton, QFormLayout, QStatusBar, QComboBox,
)
from PyQt5.QtCore import Qt, QMetaObject, Q_ARG, pyqtSlot

logger = logging.getLogger(__name__)


class SettingsWindow(QMainWindow):
    """Server, language and timing settings, plus connection tools."""

    def __init__(self, config, session, parent=None):
        super().__init__(parent)
        self.config = config
        self.session = session

        self.setWindowTitle("Proofpad — Settings")
        self.setMinimumWidth(450)
        self.setMinimumHeight(480)

        central = QWidget()
        self.setCentralWidget(central)
        layout = QVBoxLayout(central)

        # === Language service ===
        service_group = QGroupBox("Language service")
        service_layout = QFormLayout(service_group)

        url_row = QHBoxLayout()
        self._api_url_input = QLineEdit(config.api_base_url)
        self._api_url_input.setPlaceholderText("https://api.languagetool.org")
        url_row.addWidget(self._api_url_input)
        self._test_btn = QPushButton("Test connection")
        self._test_btn.clicked.connect(self._test_connection)
        url_row.addWidget(self._test_btn)
        service_layout.addRow("Server URL:", url_row)

        self._username_input = QLineEdit(config.lt_username)
        service_layout.addRow("Username (Plus):", self._username_input)
        self._api_key_input = QLineEdit(config.lt_api_key)
        self._api_key_input.setEchoMode(QLineEdit.Password)
        service_layout.addRow("API key (Plus):", self._api_key_input)

        lang_row = QHBoxLayout()
        self._language_combo = QComboBox()
        self._language_combo.setEditable(True)
        self._language_combo.setMinimumWidth(200)
        self._language_combo.addItem(config.language)
        self._language_combo.setCurrentText(config.language)
        lang_row.addWidget(self._language_combo)
        self._fetch_langs_btn = QPushButton("Fetch languages")
        self._fetch_langs_btn.clicked.connect(self._fetch_languages)
        lang_row.addWidget(self._fetch_langs_btn)
        service_layout.addRow("Default language:", lang_row)

        self._service_status = QLabel("")
        service_layout.addRow(self._service_status)

        layout.addWidget(service_group)

        # === Timing ===
        timing_group = QGroupBox("Timing")
        timing_layout = QFormLayout(timing_group)

        self._debounce_spin = QSpinBox()
        self._debounce_spin.setRange(100, 5000)
        self._debounce_spin.setSuffix(" ms")
        self._debounce_spin.setValue(config.debounce_ms)
        timing_layout.addRow("Check after typing pause:", self._debounce_spin)

        self._timeout_spin = QSpinBox()
        self._timeout_spin.setRange(500, 60000)
        self._timeout_spin.setSuffix(" ms")
        self._timeout_spin.setValue(config.request_timeout_ms)
        timing_layout.addRow("Request timeout:", self._timeout_spin)

        self._health_spin = QSpinBox()
        self._health_spin.setRange(0, 600)
        self._health_spin.setSuffix(" s")
        self._health_spin.setValue(config.health_interval_ms // 1000)
        timing_layout.addRow("Availability check every:", self._health_spin)

        layout.addWidget(timing_group)

        # === Advanced ===
        adv_group = QGroupBox("Advanced")
        adv_layout = QFormLayout(adv_group)

        self._spelling_cb = QCheckBox("Offline spelling suggestions")
        self._spelling_cb.setChecked(config.fallback_spelling)
        adv_layout.addRow(self._spelling_cb)

        self._debug_cb = QCheckBox("Enable debug logging")
        self._debug_cb.setChecked(config.debug_logging)
        adv_layout.addRow(self._debug_cb)

        layout.addWidget(adv_group)

        # === Status ===
        status_group = QGroupBox("Status")
        status_layout = QVBoxLayout(status_group)
        self._status_label = QLabel()
        status_layout.addWidget(self._status_label)
        layout.addWidget(status_group)

        # === Buttons ===
        btn_row = QHBoxLayout()
        save_btn = QPushButton("Save")
        save_btn.clicked.connect(self._save)
        btn_row.addWidget(save_btn)

        close_btn = QPushButton("Close")
        close_btn.clicked.connect(self.close)
        btn_row.addWidget(close_btn)

        layout.addLayout(btn_row)

        self._statusbar = QStatusBar()
        self.setStatusBar(self._statusbar)

        self.refresh()

    def refresh(self):
        """Show the session's current service state."""
        snap = self.session.snapshot()
        status_parts = [
            f"Service: {snap.health.value}",
            f"Language: {snap.language}",
            f"Suggestions: {len(snap.matches)} ({snap.matches.source.value})",
        ]
        self._status_label.setText(" | ".join(status_parts))

    def _client_for_form(self):
        from proofpad.api_client import LanguageToolClient
        return LanguageToolClient(
            self._api_url_input.text(),
            timeout_ms=self._timeout_spin.value(),
            username=self._username_input.text(),
            api_key=self._api_key_input.text(),
        )

    def _test_connection(self):
        """Probe the server in a background thread."""
        from proofpad.api_client import ConfigError
        try:
            client = self._client_for_form()
        except ConfigError as e:
            self._service_status.setText(str(e))
            return

        self._test_btn.setEnabled(False)
        self._service_status.setText("Testing...")

        def _do_probe():
            ok = client.probe()
            QMetaObject.invokeMethod(
                self, "_on_probe_done",
                Qt.QueuedConnection,
                Q_ARG(bool, ok),
            )

        t = threading.Thread(target=_do_probe, daemon=True)
        t.start()

    @pyqtSlot(bool)
    def _on_probe_done(self, ok):
        self._test_btn.setEnabled(True)
        self._service_status.setText("Server reachable" if ok else "Server unreachable")

    def _fetch_languages(self):
        """Fetch supported languages in a background thread."""
        from proofpad.api_client import ConfigError
        try:
            client = self._client_for_form()
        except ConfigError as e:
            self._service_status.setText(str(e))
            return

        self._fetch_langs_btn.setEnabled(False)
        self._service_status.setText("Fetching...")

        def _do_fetch():
            languages = client.fetch_languages()
            QMetaObject.invokeMethod(
                self, "_on_languages_fetched",
                Qt.QueuedConnection,
                Q_ARG(list, languages),
            )

        t = threading.Thread(target=_do_fetch, daemon=True)
        t.start()

    @pyqtSlot(list)
    def _on_languages_fetched(self, languages):
        """Handle fetched language list (called on main thread)."""
        self._fetch_langs_btn.setEnabled(True)

        if not languages:
            self._service_status.setText("No languages found or connection failed")
            self._statusbar.showMessage("Failed to fetch languages. Check URL and server.", 5000)
            return

        current = self._language_combo.currentText()
        self._language_combo.clear()
        self._language_combo.addItem("auto")
        for lang in languages:
            code = lang.get("longCode") or lang.get("code")
            if code and self._language_combo.findText(code) < 0:
                self._language_combo.addItem(code)

        idx = self._language_combo.findText(current)
        if idx >= 0:
            self._language_combo.setCurrentIndex(idx)

        count = len(languages)
        self._service_status.setText(f"{count} language(s)")
        self._statusbar.showMessage(f"Fetched {count} language(s).", 3000)

    def _save(self):
        api_base_url = self._api_url_input.text().strip()
        if not api_base_url:
            self._statusbar.showMessage("Server URL is required.", 5000)
            return
        language = self._language_combo.currentText().strip() or "auto"

        self.config.set("api_base_url", api_base_url)
        self.config.set("lt_username", self._username_input.text().strip())
        self.config.set("lt_api_key", self._api_key_input.text().strip())
        self.config.set("language", language)
        self.config.set("debounce_ms", self._debounce_spin.value())
        self.config.set("request_timeout_ms", self._timeout_spin.value())
        self.config.set("health_interval_ms", self._health_spin.value() * 1000)
        self.config.set("fallback_spelling", self._spelling_cb.isChecked())
        self.config.set("debug_logging", self._debug_cb.isChecked())
        self.config.save()
        logger.info("Settings saved (server %s, language %s)",
                    self.config.api_base_url, self.config.language)

        self.session.update_timing(
            debounce_ms=self.config.debounce_ms,
            health_interval_ms=self.config.health_interval_ms,
        )
        if language != self.session.language:
            self.session.set_language(language)
        self._statusbar.showMessage("Settings saved. Server changes apply after restart.", 3000)
        self.refresh()
