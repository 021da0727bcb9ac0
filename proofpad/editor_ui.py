"""Editor window (Qt) for Proofpad."""
import html
import logging
from PyQt5.QtWidgets import (
    QMainWindow, QWidget, QVBoxLayout, QHBoxLayout, QSplitter,
    QGroupBox, QLabel, QPlainTextEdit, QTextEdit, QListWidget,
    QListWidgetItem, QPushButton, QComboBox, QAction, QStatusBar,
)
from PyQt5.QtGui import QColor, QTextCharFormat, QTextCursor, QBrush
from PyQt5.QtCore import Qt, QEvent, QMetaObject, pyqtSlot

from proofpad.annotator import extract_snippet
from proofpad.matches import Severity, python_index, utf16_offset
from proofpad.scheduler import AnalysisStatus

logger = logging.getLogger(__name__)

LANGUAGES = [
    ("auto", "Auto-detect"),
    ("en-US", "English (US)"),
    ("en-GB", "English (UK)"),
    ("es", "Spanish"),
    ("fr", "French"),
    ("de", "German"),
]

SEVERITY_COLORS = {
    Severity.CRITICAL: QColor(0xE5, 0x39, 0x35),
    Severity.WARNING: QColor(0x1E, 0x88, 0xE5),
    Severity.INFO: QColor(0xFB, 0x8C, 0x00),
}
SELECTED_BACKGROUND = QColor(0xFF, 0xF5, 0x9D)


class EditorWindow(QMainWindow):
    """Text editor with live suggestions on the right."""

    def __init__(self, config, session, parent=None):
        super().__init__(parent)
        self.config = config
        self.session = session
        self._settings_window = None
        self._rendering = False

        self.setWindowTitle("Proofpad")
        self.resize(1100, 700)

        splitter = QSplitter(Qt.Horizontal)
        self.setCentralWidget(splitter)

        # === Editor pane ===
        editor_pane = QWidget()
        editor_layout = QVBoxLayout(editor_pane)

        top_row = QHBoxLayout()
        top_row.addWidget(QLabel("Writing language:"))
        self._language_combo = QComboBox()
        for code, name in LANGUAGES:
            self._language_combo.addItem(name, code)
        idx = self._language_combo.findData(session.language)
        if idx < 0:
            self._language_combo.addItem(session.language, session.language)
            idx = self._language_combo.count() - 1
        self._language_combo.setCurrentIndex(idx)
        self._language_combo.currentIndexChanged.connect(self._on_language_changed)
        top_row.addWidget(self._language_combo)
        top_row.addStretch(1)
        self._stats_label = QLabel()
        top_row.addWidget(self._stats_label)
        editor_layout.addLayout(top_row)

        self._editor = QPlainTextEdit()
        self._editor.setPlainText(session.text)
        self._editor.textChanged.connect(self._on_text_changed)
        self._editor.viewport().installEventFilter(self)
        editor_layout.addWidget(self._editor)

        splitter.addWidget(editor_pane)

        # === Suggestions pane ===
        side_pane = QWidget()
        side_layout = QVBoxLayout(side_pane)

        header = QHBoxLayout()
        header.addWidget(QLabel("<b>Suggestions</b>"))
        header.addStretch(1)
        self._status_label = QLabel()
        header.addWidget(self._status_label)
        side_layout.addLayout(header)

        self._suggestion_list = QListWidget()
        self._suggestion_list.setWordWrap(True)
        self._suggestion_list.currentRowChanged.connect(self._on_row_changed)
        side_layout.addWidget(self._suggestion_list, 1)

        self._apply_group = QGroupBox("Apply correction")
        self._apply_layout = QVBoxLayout(self._apply_group)
        self._context_label = QLabel()
        self._context_label.setWordWrap(True)
        self._context_label.setTextFormat(Qt.RichText)
        self._apply_layout.addWidget(self._context_label)
        self._replacement_box = QVBoxLayout()
        self._apply_layout.addLayout(self._replacement_box)
        ignore_btn = QPushButton("Ignore this suggestion")
        ignore_btn.clicked.connect(self.session.clear_selection)
        self._apply_layout.addWidget(ignore_btn)
        side_layout.addWidget(self._apply_group)

        splitter.addWidget(side_pane)
        splitter.setStretchFactor(0, 3)
        splitter.setStretchFactor(1, 2)

        self._build_menu()

        self._statusbar = QStatusBar()
        self.setStatusBar(self._statusbar)

        session.add_listener(self._on_session_event)
        self._render()

    def _build_menu(self):
        menu = self.menuBar().addMenu("&File")

        recheck_action = QAction("Check again", self)
        recheck_action.setShortcut("F5")
        recheck_action.triggered.connect(self.session.refresh)
        menu.addAction(recheck_action)

        settings_action = QAction("Settings...", self)
        settings_action.triggered.connect(self._open_settings)
        menu.addAction(settings_action)

        menu.addSeparator()

        quit_action = QAction("Quit", self)
        quit_action.setShortcut("Ctrl+Q")
        quit_action.triggered.connect(self.close)
        menu.addAction(quit_action)

    # --- session → UI -----------------------------------------------------

    def _on_session_event(self, session):
        """Called from any thread; redraw on the main thread."""
        QMetaObject.invokeMethod(self, "_render", Qt.QueuedConnection)

    @pyqtSlot()
    def _render(self):
        snap = self.session.snapshot()
        self._rendering = True
        try:
            self._render_highlights(snap)
            self._render_list(snap)
            self._render_apply_panel(snap)
            self._sync_language(snap.language)
        finally:
            self._rendering = False

        self._status_label.setText(snap.status_message)
        self._stats_label.setText(f"{snap.stats.words} words • {snap.stats.sentences} sentences")
        if snap.status is AnalysisStatus.FAILED:
            self._statusbar.showMessage("Language service unavailable — showing local suggestions.", 5000)

    def _sync_language(self, language):
        if self._language_combo.currentData() == language:
            return
        idx = self._language_combo.findData(language)
        if idx < 0:
            self._language_combo.addItem(language, language)
            idx = self._language_combo.count() - 1
        self._language_combo.blockSignals(True)
        self._language_combo.setCurrentIndex(idx)
        self._language_combo.blockSignals(False)

    def _render_highlights(self, snap):
        text = self._editor.toPlainText()
        if text != snap.text:
            # The widget is ahead of the session; the next render catches up
            self._editor.setExtraSelections([])
            return

        selections = []
        doc = self._editor.document()
        for seg in snap.segments:
            if not seg.highlighted:
                continue
            match = snap.matches[seg.match_index]
            fmt = QTextCharFormat()
            fmt.setUnderlineStyle(QTextCharFormat.SpellCheckUnderline)
            fmt.setUnderlineColor(SEVERITY_COLORS[match.severity])
            if seg.selected:
                fmt.setBackground(QBrush(SELECTED_BACKGROUND))

            cursor = QTextCursor(doc)
            cursor.setPosition(utf16_offset(text, seg.start))
            cursor.setPosition(utf16_offset(text, seg.end), QTextCursor.KeepAnchor)

            sel = QTextEdit.ExtraSelection()
            sel.cursor = cursor
            sel.format = fmt
            selections.append(sel)
        self._editor.setExtraSelections(selections)

    def _render_list(self, snap):
        self._suggestion_list.clear()
        chips_max = self.config.max_chip_suggestions
        for m in snap.matches:
            lines = [f"{m.title}    [{m.severity.label}]"]
            if m.short_message and m.message != m.short_message:
                lines.append(m.message)
            if m.replacements:
                lines.append("  ·  ".join(r or "(remove)" for r in m.replacements[:chips_max]))
            item = QListWidgetItem("\n".join(lines))
            item.setForeground(QBrush(SEVERITY_COLORS[m.severity]))
            item.setToolTip(m.message)
            self._suggestion_list.addItem(item)

        if snap.selected_index is not None:
            self._suggestion_list.setCurrentRow(snap.selected_index)

    def _render_apply_panel(self, snap):
        while self._replacement_box.count():
            widget = self._replacement_box.takeAt(0).widget()
            if widget is not None:
                widget.deleteLater()

        match = snap.selected_match
        self._apply_group.setVisible(match is not None)
        if match is None:
            return

        snippet = extract_snippet(snap.text, match)
        self._context_label.setText(
            "{prefix}{left}<b><u>{mid}</u></b>{right}{suffix}".format(
                **{k: _escape(v) for k, v in snippet.items()}))

        if not match.replacements:
            self._replacement_box.addWidget(QLabel("No replacement suggested."))
            return
        for value in match.replacements[:self.config.max_apply_suggestions]:
            btn = QPushButton(f"Replace with: {value or '(remove)'}")
            btn.clicked.connect(lambda _checked=False, v=value: self._apply(v))
            self._replacement_box.addWidget(btn)

    # --- UI → session -----------------------------------------------------

    def _on_text_changed(self):
        self.session.set_text(self._editor.toPlainText())

    def _on_row_changed(self, row):
        if self._rendering or row < 0:
            return
        self.session.select(row)

    def _on_language_changed(self, index):
        code = self._language_combo.itemData(index)
        logger.info("Writing language: %s", code)
        self.config.language = code
        self.session.set_language(code)

    def _apply(self, replacement: str):
        match = self.session.selected_match
        if match is None:
            return
        text = self._editor.toPlainText()
        start, end = utf16_offset(text, match.offset), utf16_offset(text, match.end)
        if not self.session.apply(match, replacement):
            logger.debug("Apply ignored: suggestion at %d is stale", match.offset)
            self._statusbar.showMessage("That suggestion no longer applies.", 3000)
            return

        # Edit through a cursor so the change lands on the widget's undo stack.
        # textChanged then hands the session the text it already has: a no-op.
        cursor = QTextCursor(self._editor.document())
        cursor.setPosition(start)
        cursor.setPosition(end, QTextCursor.KeepAnchor)
        cursor.insertText(replacement)

    def eventFilter(self, obj, event):
        if (obj is self._editor.viewport()
                and event.type() == QEvent.MouseButtonRelease
                and event.button() == Qt.LeftButton):
            cursor = self._editor.cursorForPosition(event.pos())
            if not self._editor.textCursor().hasSelection():
                text = self._editor.toPlainText()
                self.session.select_at(python_index(text, cursor.position()))
        return super().eventFilter(obj, event)

    def _open_settings(self):
        from proofpad.settings_ui import SettingsWindow
        if self._settings_window is None:
            self._settings_window = SettingsWindow(self.config, self.session)
        self._settings_window.refresh()
        self._settings_window.show()
        self._settings_window.raise_()
        self._settings_window.activateWindow()

    def closeEvent(self, event):
        self.session.remove_listener(self._on_session_event)
        super().closeEvent(event)


def _escape(s: str) -> str:
    return html.escape(s, quote=False).replace("\n", " ")
