from typing import Optional

from PySide6 import QtCore, QtGui, QtWidgets

from .entry import format_time_ago
from .session import QUICK_PICK_MAX, SelectionSession


POPUP_WIDTH = 420
POPUP_HEIGHT = 460

_DIGIT_KEYS = {int(getattr(QtCore.Qt.Key, f"Key_{n}")): n for n in range(1, QUICK_PICK_MAX + 1)}


class HistoryPopup(QtWidgets.QWidget):
    """Floating search + list over one ``SelectionSession``.

    The widget only translates input into session transitions and redraws;
    the session decides what is selected.
    """

    def __init__(self, parent: Optional[QtWidgets.QWidget] = None):
        super().__init__(parent)
        self._session: Optional[SelectionSession] = None
        self._history_enabled = True

        self.setWindowTitle("Clipboard History")
        self.setWindowFlags(
            QtCore.Qt.WindowType.Tool
            | QtCore.Qt.WindowType.FramelessWindowHint
            | QtCore.Qt.WindowType.WindowStaysOnTopHint
        )
        self.resize(POPUP_WIDTH, POPUP_HEIGHT)
        self._build_ui()

    def _build_ui(self) -> None:
        root = QtWidgets.QVBoxLayout(self)
        root.setContentsMargins(12, 12, 12, 8)
        root.setSpacing(8)

        self.search_edit = QtWidgets.QLineEdit()
        self.search_edit.setPlaceholderText("Search clipboard history...")
        self.search_edit.textChanged.connect(self._on_filter_changed)
        root.addWidget(self.search_edit, 0)

        self.list_widget = QtWidgets.QListWidget()
        self.list_widget.setFocusPolicy(QtCore.Qt.FocusPolicy.NoFocus)
        self.list_widget.itemDoubleClicked.connect(self._on_item_activated)
        self.list_widget.currentRowChanged.connect(self._on_row_changed)
        root.addWidget(self.list_widget, 1)

        self.status_label = QtWidgets.QLabel("")
        self.status_label.setAlignment(QtCore.Qt.AlignmentFlag.AlignCenter)
        pal = self.status_label.palette()
        pal.setColor(QtGui.QPalette.ColorRole.WindowText, QtGui.QColor("#666"))
        self.status_label.setPalette(pal)
        root.addWidget(self.status_label, 0)

    # -------- overlay protocol --------
    def present(self, session: SelectionSession, history_enabled: bool = True) -> None:
        self._session = session
        self._history_enabled = history_enabled

        self.search_edit.blockSignals(True)
        self.search_edit.clear()
        self.search_edit.blockSignals(False)
        self._refresh_list()

        self.search_edit.installEventFilter(self)
        session.attach(lambda: self.search_edit.removeEventFilter(self))

        app = QtWidgets.QApplication.instance()
        if app is not None:
            app.applicationStateChanged.connect(self._on_application_state_changed)
            session.attach(lambda: app.applicationStateChanged.disconnect(self._on_application_state_changed))

        self._center_on_screen()
        self.show()
        self.raise_()
        self.activateWindow()
        self.search_edit.setFocus()

    def dismiss(self) -> None:
        self._session = None
        self.hide()

    # -------- input --------
    def eventFilter(self, watched: QtCore.QObject, event: QtCore.QEvent) -> bool:
        session = self._session
        if session is None or watched is not self.search_edit or event.type() != QtCore.QEvent.Type.KeyPress:
            return super().eventFilter(watched, event)

        key = int(event.key())
        if key == QtCore.Qt.Key.Key_Escape:
            session.cancel()
        elif key in (QtCore.Qt.Key.Key_Return, QtCore.Qt.Key.Key_Enter):
            session.confirm()
        elif key == QtCore.Qt.Key.Key_Down:
            session.move_down()
        elif key == QtCore.Qt.Key.Key_Up:
            session.move_up()
        elif key in _DIGIT_KEYS:
            if session.press_digit(_DIGIT_KEYS[key]) is None:
                return super().eventFilter(watched, event)
        else:
            return super().eventFilter(watched, event)

        if not session.closed:
            self._sync_highlight()
        return True

    def _on_filter_changed(self, text: str) -> None:
        if self._session is None:
            return
        self._session.set_filter(text)
        self._refresh_list()

    def _on_item_activated(self, item: QtWidgets.QListWidgetItem) -> None:
        if self._session is None:
            return
        self._session.activate(self.list_widget.row(item))

    def _on_row_changed(self, row: int) -> None:
        if self._session is not None and row >= 0:
            self._session.highlight_row(row)

    def _on_application_state_changed(self, state: QtCore.Qt.ApplicationState) -> None:
        if self._session is not None and state != QtCore.Qt.ApplicationState.ApplicationActive:
            self._session.focus_lost()

    def changeEvent(self, event: QtCore.QEvent) -> None:
        super().changeEvent(event)
        if (
            self._session is not None
            and event.type() == QtCore.QEvent.Type.ActivationChange
            and not self.isActiveWindow()
        ):
            self._session.focus_lost()

    # -------- rendering --------
    def _refresh_list(self) -> None:
        session = self._session
        self.list_widget.blockSignals(True)
        self.list_widget.clear()
        if session is not None:
            for row, entry in enumerate(session.visible):
                number = f"{row + 1}." if row < QUICK_PICK_MAX else "  "
                when = format_time_ago(entry.created_at)
                item = QtWidgets.QListWidgetItem(f"{number} {entry.display_label()}\n     {when}")
                item.setToolTip(entry.searchable_text())
                self.list_widget.addItem(item)
        self.list_widget.blockSignals(False)
        self._sync_highlight()
        self._update_status()

    def _sync_highlight(self) -> None:
        session = self._session
        row = session.highlight if session is not None else None
        self.list_widget.blockSignals(True)
        if row is None:
            self.list_widget.setCurrentRow(-1)
        else:
            self.list_widget.setCurrentRow(row)
            self.list_widget.scrollToItem(self.list_widget.item(row))
        self.list_widget.blockSignals(False)

    def _update_status(self) -> None:
        count = len(self._session.visible) if self._session is not None else 0
        history = "History: On" if self._history_enabled else "History: Off"
        self.status_label.setText(f"{count} items • {history} • Press 1-9 to quick paste")

    def _center_on_screen(self) -> None:
        screen = QtGui.QGuiApplication.primaryScreen()
        if screen is None:
            return
        area = screen.availableGeometry()
        self.move(area.center().x() - self.width() // 2, area.center().y() - self.height() // 2)
