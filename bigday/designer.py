"""RSVP design builder tab: block list, block editor, global styling, save/publish/share."""
from __future__ import annotations
import logging
from typing import Callable, List, Optional

from PySide6.QtCore import Qt, QMimeData, Signal
from PySide6.QtGui import QAction, QColor, QDrag, QGuiApplication
from PySide6.QtWidgets import (
    QAbstractItemView, QCheckBox, QColorDialog, QComboBox, QDockWidget, QDoubleSpinBox,
    QFileDialog, QFormLayout, QGroupBox, QHBoxLayout, QLabel, QLineEdit, QListWidget,
    QListWidgetItem, QMainWindow, QMenu, QMessageBox, QPlainTextEdit, QPushButton,
    QScrollArea, QSlider, QToolBar, QToolButton, QVBoxLayout, QWidget, QWidgetAction,
)

from .api import ApiClient
from .config import Settings
from .design import (
    ALL_GUEST_FIELDS, BLOCK_LABELS, BLOCK_TYPES, FLOW_PRESETS, AttendanceBlock, CtaBlock,
    DesignDocument, FormFieldBlock, GuestDetailsBlock, HeadlineBlock, ImageBlock, InfoBlock,
    ReorderGesture, RsvpBlock, RsvpDesign, TextBlock, default_design,
)
from .design_mapper import to_backend_payload, to_frontend_design, validate_design
from .dialogs import Toast
from .errors import ApiError
from .models import Event, FormFieldConfig
from .queries import QueryCache, design_key, form_fields_key
from .rsvp_form import PublicRsvpDialog
from .share import generate_share_token, load_public_design, public_link, save_share_snapshot
from .storage import LocalStorage

logger = logging.getLogger(__name__)

BLOCK_MIME = "application/x-bigday-block"
IMAGE_FILTER = "Images (*.png *.jpg *.jpeg *.webp *.gif)"
ALIGNMENTS = ("left", "center", "right")
WIDTHS = ("full", "half")
IMAGE_HEIGHTS = ("short", "medium", "tall")
BACKGROUND_TYPES = ("color", "image", "video")
GUEST_FIELD_LABELS = {"name": "Name", "email": "Email", "phone": "Phone",
                      "pax": "Number of guests", "guestType": "Guest type"}


def block_caption(block: RsvpBlock) -> str:
    text = (block.title_text or "").strip().replace("\n", " ")
    return f"{BLOCK_LABELS.get(block.kind, block.kind)} · {text}" if text else BLOCK_LABELS.get(block.kind, block.kind)


class ColorButton(QPushButton):
    """Swatch button; empty colour means "theme default"."""
    colorChanged = Signal(str)

    def __init__(self, color: Optional[str] = None, allow_clear: bool = False, parent=None):
        super().__init__(parent)
        self.allow_clear = allow_clear
        self._color = color or ""
        self.clicked.connect(self._pick)
        if allow_clear:
            self.setContextMenuPolicy(Qt.ActionsContextMenu)
            act = QAction("Use default", self)
            act.triggered.connect(lambda: self.set_color("", emit=True))
            self.addAction(act)
        self._paint()

    def color(self) -> str:
        return self._color

    def set_color(self, color: Optional[str], emit: bool = False):
        self._color = color or ""
        self._paint()
        if emit:
            self.colorChanged.emit(self._color)

    def _paint(self):
        if self._color:
            self.setText(self._color)
            text = "#000" if QColor(self._color).lightness() > 140 else "#fff"
            self.setStyleSheet(f"background:{self._color};color:{text};border:1px solid #cbd5e1;"
                               "border-radius:4px;padding:3px 8px;")
        else:
            self.setText("Default")
            self.setStyleSheet("")

    def _pick(self):
        c = QColorDialog.getColor(QColor(self._color or "#ffffff"), self, "Choose colour")
        if c.isValid():
            self.set_color(c.name(), emit=True)


# ===== Block list =====

class BlockListWidget(QListWidget):
    """Ordered block list; drag-reorder goes through a ReorderGesture and lands as one order change."""
    blockSelected = Signal(object)          # block id or None

    def __init__(self, document: DesignDocument, parent=None):
        super().__init__(parent)
        self.document = document
        self.gesture: Optional[ReorderGesture] = None
        self.setSelectionMode(QAbstractItemView.SingleSelection)
        self.setDragEnabled(True)
        self.setAcceptDrops(True)
        self.setDropIndicatorShown(True)
        self.setDragDropMode(QAbstractItemView.DragDrop)
        self.currentItemChanged.connect(self._on_current)

    def current_id(self) -> Optional[str]:
        it = self.currentItem()
        return it.data(Qt.UserRole) if it is not None else None

    def refresh(self, order: Optional[List[str]] = None):
        """Rebuild rows from the document (or from a pending order during a drag)."""
        keep = self.current_id()
        by_id = {b.id: b for b in self.document.blocks}
        ids = order if order is not None else list(by_id)
        self.blockSignals(True)
        self.clear()
        for bid in ids:
            block = by_id.get(bid)
            if block is None:
                continue
            it = QListWidgetItem(block_caption(block))
            it.setData(Qt.UserRole, bid)
            self.addItem(it)
            if bid == keep:
                self.setCurrentItem(it)
        self.blockSignals(False)

    def select_block(self, block_id: Optional[str]):
        for i in range(self.count()):
            if self.item(i).data(Qt.UserRole) == block_id:
                self.setCurrentRow(i)
                return
        self.setCurrentRow(-1)

    def _on_current(self, cur, _prev):
        self.blockSelected.emit(cur.data(Qt.UserRole) if cur is not None else None)

    # ---------- keyboard / button reorder ----------
    def move_current(self, step: int):
        bid = self.current_id()
        if bid is None:
            return
        i = self.document.index_of(bid)
        j = i + step
        if i < 0 or not (0 <= j < len(self.document.blocks)):
            return
        gesture = self.document.begin_reorder(bid)
        gesture.hover(self.document.blocks[j].id)
        self.document.finish_reorder(gesture)

    # ---------- drag reorder ----------
    def startDrag(self, supported_actions):
        bid = self.current_id()
        if bid is None:
            return
        self.gesture = self.document.begin_reorder(bid)
        md = QMimeData()
        md.setData(BLOCK_MIME, bid.encode("utf-8"))
        drag = QDrag(self)
        drag.setMimeData(md)
        drag.exec(Qt.MoveAction)
        if self.gesture is not None:
            # dropped outside the list
            self.gesture.cancel()
            self.gesture = None
            self.refresh()

    def dragEnterEvent(self, event):
        if event.mimeData().hasFormat(BLOCK_MIME) and self.gesture is not None:
            event.acceptProposedAction()
        else:
            event.ignore()

    def dragMoveEvent(self, event):
        if self.gesture is None:
            event.ignore()
            return
        target = self.itemAt(event.position().toPoint())
        if target is not None:
            pending = self.gesture.hover(target.data(Qt.UserRole))
            if [self.item(i).data(Qt.UserRole) for i in range(self.count())] != pending:
                self.refresh(pending)
        event.acceptProposedAction()

    def dropEvent(self, event):
        if self.gesture is None:
            event.ignore()
            return
        gesture, self.gesture = self.gesture, None
        self.document.finish_reorder(gesture)
        self.refresh()
        event.acceptProposedAction()


# ===== Block editor =====

class BlockEditor(QScrollArea):
    """Form for the selected block. Edits write straight to the document."""

    def __init__(self, document: DesignDocument, parent=None):
        super().__init__(parent)
        self.document = document
        self.block_id: Optional[str] = None
        self.setWidgetResizable(True)
        self.setMinimumWidth(360)
        self.load_block(None)

    @property
    def block(self) -> Optional[RsvpBlock]:
        return self.document.block(self.block_id) if self.block_id else None

    def _patch(self, **patch):
        if self.block_id:
            self.document.update_block(self.block_id, **patch)

    def reload(self):
        self.load_block(self.block_id)

    def load_block(self, block_id: Optional[str]):
        self.block_id = block_id
        body = QWidget()
        root = QVBoxLayout(body)
        block = self.block
        if block is None:
            hint = QLabel("Select a block to edit it, or add one from the toolbar.")
            hint.setWordWrap(True); hint.setStyleSheet("color:#667085;")
            root.addWidget(hint)
            root.addStretch(1)
            self.setWidget(body)
            return

        title = QLabel(BLOCK_LABELS.get(block.kind, block.kind))
        title.setStyleSheet("font-weight:600;font-size:14px;")
        root.addWidget(title)

        content = QGroupBox("Content")
        form = QFormLayout(content)
        form.setLabelAlignment(Qt.AlignRight)
        builder = getattr(self, f"_build_{block.kind}", None)
        if builder is not None:
            builder(form, block)
        root.addWidget(content)
        if isinstance(block, ImageBlock):
            root.addWidget(self._gallery_group(block))
        root.addWidget(self._background_group(block))

        btn_remove = QPushButton("Remove block")
        btn_remove.setStyleSheet("color:#b42318;")
        btn_remove.clicked.connect(self._remove)
        root.addWidget(btn_remove, 0, Qt.AlignLeft)
        root.addStretch(1)
        self.setWidget(body)

    # ---------- field helpers ----------
    def _line(self, form: QFormLayout, label: str, value: Optional[str], attr: str):
        ed = QLineEdit(value or "")
        ed.textEdited.connect(lambda text: self._patch(**{attr: text}))
        form.addRow(label, ed)
        return ed

    def _text(self, form: QFormLayout, label: str, value: Optional[str], attr: str):
        ed = QPlainTextEdit(value or "")
        ed.setFixedHeight(96)
        ed.textChanged.connect(lambda: self._patch(**{attr: ed.toPlainText()}))
        form.addRow(label, ed)
        return ed

    def _choice(self, form: QFormLayout, label: str, options, value: str, attr: str):
        cb = QComboBox(); cb.addItems(list(options))
        if value in options:
            cb.setCurrentText(value)
        cb.currentTextChanged.connect(lambda text: self._patch(**{attr: text}))
        form.addRow(label, cb)
        return cb

    def _check(self, form: QFormLayout, label: str, value: bool, attr: str):
        chk = QCheckBox(label); chk.setChecked(bool(value))
        chk.toggled.connect(lambda on: self._patch(**{attr: on}))
        form.addRow("", chk)
        return chk

    def _color(self, form: QFormLayout, label: str, value: Optional[str], attr: str):
        btn = ColorButton(value, allow_clear=True)
        btn.colorChanged.connect(lambda c: self._patch(**{attr: c or None}))
        form.addRow(label, btn)
        return btn

    # ---------- per kind ----------
    def _build_headline(self, form, b: HeadlineBlock):
        self._line(form, "Title", b.title, "title")
        self._line(form, "Subtitle", b.subtitle, "subtitle")
        self._choice(form, "Align", ALIGNMENTS, b.align, "align")
        self._line(form, "Accent classes", b.accent, "accent")

    def _build_text(self, form, b: TextBlock):
        self._text(form, "Body", b.body, "body")
        self._choice(form, "Width", WIDTHS, b.width, "width")
        self._choice(form, "Align", ALIGNMENTS, b.align, "align")
        self._check(form, "Muted text", bool(b.muted), "muted")

    def _build_info(self, form, b: InfoBlock):
        self._line(form, "Label", b.label, "label")
        self._text(form, "Content", b.content, "content")
        self._line(form, "Accent classes", b.accent, "accent")

    def _build_attendance(self, form, b: AttendanceBlock):
        self._line(form, "Title", b.title, "title")
        self._line(form, "Subtitle", b.subtitle, "subtitle")
        self._choice(form, "Width", WIDTHS, b.width, "width")

    def _build_guestDetails(self, form, b: GuestDetailsBlock):
        self._line(form, "Title", b.title, "title")
        self._line(form, "Subtitle", b.subtitle, "subtitle")
        self._choice(form, "Width", WIDTHS, b.width, "width")
        for name in ALL_GUEST_FIELDS:
            chk = QCheckBox(f"Ask for {GUEST_FIELD_LABELS[name].lower()}")
            chk.setChecked(b.shows(name))
            chk.toggled.connect(lambda on, name=name: self._toggle_guest_field(name, on))
            form.addRow("", chk)
        self._color(form, "Card colour", b.card_color, "card_color")
        self._color(form, "Card text", b.card_text_color, "card_text_color")

    def _toggle_guest_field(self, name: str, on: bool):
        block = self.block
        if isinstance(block, GuestDetailsBlock):
            self._patch(show_fields={**block.show_fields, name: on})

    def _build_formField(self, form, b: FormFieldBlock):
        cb = QComboBox()
        cb.addItem("Not linked", None)
        for f in self.document.design.form_field_configs:
            cb.addItem(f"{f.label} ({f.type_key})", f.id)
        i = cb.findData(b.question_id)
        if i >= 0:
            cb.setCurrentIndex(i)
        cb.currentIndexChanged.connect(lambda _: self._link_question(cb.currentData()))
        form.addRow("Question", cb)
        self._line(form, "Label", b.label, "label")
        self._line(form, "Placeholder", b.placeholder, "placeholder")
        self._check(form, "Required", b.required, "required")
        self._choice(form, "Width", WIDTHS, b.width, "width")
        self._line(form, "Hint", b.hint, "hint")
        self._color(form, "Card colour", b.field_card_color, "field_card_color")
        self._color(form, "Card text", b.field_card_text_color, "field_card_text_color")

    def _link_question(self, question_id: Optional[str]):
        if question_id is None:
            self._patch(question_id=None)
        else:
            self.document.apply_question(self.block_id, self.document.question(question_id))
        self.reload()

    def _build_cta(self, form, b: CtaBlock):
        self._line(form, "Label", b.label, "label")
        self._line(form, "Link", b.href, "href")
        self._choice(form, "Align", ALIGNMENTS, b.align, "align")
        self._color(form, "Button colour", b.cta_color, "cta_color")
        self._color(form, "Button text", b.cta_text_color, "cta_text_color")

    def _build_image(self, form, b: ImageBlock):
        self._line(form, "Caption", b.caption, "caption")
        self._choice(form, "Height", IMAGE_HEIGHTS, b.height, "height")

    # ---------- images ----------
    def _pick_images(self, many: bool = True) -> List[str]:
        if many:
            paths, _ = QFileDialog.getOpenFileNames(self, "Choose images", "", IMAGE_FILTER)
            return paths
        path, _ = QFileDialog.getOpenFileName(self, "Choose image", "", IMAGE_FILTER)
        return [path] if path else []

    def _gallery_group(self, b: ImageBlock) -> QGroupBox:
        grp = QGroupBox(f"Gallery ({len(b.images)})")
        form = QFormLayout(grp)
        cb = QComboBox()
        for m in b.images:
            cb.addItem(m.alt or m.src, m.id)
        i = cb.findData(b.active_image_id)
        if i >= 0:
            cb.setCurrentIndex(i)
        cb.currentIndexChanged.connect(lambda _: self._patch(active_image_id=cb.currentData()))
        form.addRow("Shown image", cb)
        row = QHBoxLayout()
        btn_add = QPushButton("Add images…")
        btn_replace = QPushButton("Replace image…")
        btn_add.clicked.connect(self._append_images)
        btn_replace.clicked.connect(self._replace_image)
        row.addWidget(btn_add); row.addWidget(btn_replace)
        form.addRow(row)
        return grp

    def _append_images(self):
        paths = self._pick_images()
        if paths:
            self.document.append_images(self.block_id, paths)
            self.reload()

    def _replace_image(self):
        paths = self._pick_images(many=False)
        if paths:
            self.document.replace_image(self.block_id, paths[0])
            self.reload()

    def _background_group(self, b: RsvpBlock) -> QGroupBox:
        grp = QGroupBox("Section background")
        form = QFormLayout(grp)
        cb = QComboBox()
        cb.addItem("None", None)
        for m in b.background.images:
            cb.addItem(m.alt or m.src, m.id)
        i = cb.findData(b.background.active_image_id)
        if i >= 0:
            cb.setCurrentIndex(i)
        cb.currentIndexChanged.connect(
            lambda _: cb.currentData() and self.document.set_active_background(self.block_id, cb.currentData()))
        form.addRow("Background", cb)

        overlay = QSlider(Qt.Horizontal); overlay.setRange(0, 100)
        overlay.setValue(int(round(b.background.overlay * 100)))
        lbl = QLabel(f"{overlay.value()}%")
        overlay.valueChanged.connect(lambda v: lbl.setText(f"{v}%"))
        overlay.sliderReleased.connect(lambda: self.document.set_overlay(self.block_id, overlay.value() / 100))
        row = QHBoxLayout(); row.addWidget(overlay, 1); row.addWidget(lbl)
        form.addRow("Overlay", row)

        row = QHBoxLayout()
        btn_bg = QPushButton("Add backgrounds…")
        btn_bg.clicked.connect(self._add_backgrounds)
        row.addWidget(btn_bg)
        form.addRow(row)

        section = b.section_image.alt if b.section_image else "None"
        row = QHBoxLayout()
        row.addWidget(QLabel(section), 1)
        btn_set = QPushButton("Set…"); btn_clear = QPushButton("Clear")
        btn_clear.setEnabled(b.section_image is not None)
        btn_set.clicked.connect(self._set_section_image)
        btn_clear.clicked.connect(self._clear_section_image)
        row.addWidget(btn_set); row.addWidget(btn_clear)
        form.addRow("Section image", row)
        return grp

    def _add_backgrounds(self):
        paths = self._pick_images()
        if paths:
            self.document.add_background_images(self.block_id, paths)
            self.reload()

    def _set_section_image(self):
        paths = self._pick_images(many=False)
        if paths:
            self.document.set_section_image(self.block_id, paths[0])
            self.reload()

    def _clear_section_image(self):
        self.document.clear_section_image(self.block_id)
        self.reload()

    def _remove(self):
        if self.block_id:
            self.document.remove_block(self.block_id)
            self.load_block(None)


# ===== Global settings =====

class GlobalSettingsPanel(QWidget):
    def __init__(self, document: DesignDocument, parent=None):
        super().__init__(parent)
        self.document = document
        self._loading = False
        form = QFormLayout(self)
        form.setLabelAlignment(Qt.AlignRight)

        self.btn_accent = ColorButton()
        self.cb_bg_type = QComboBox(); self.cb_bg_type.addItems(BACKGROUND_TYPES)
        self.btn_bg_color = ColorButton()
        self.ed_bg_asset = QLineEdit(); self.ed_bg_asset.setPlaceholderText("Image or video URL")
        self.sp_overlay = QDoubleSpinBox(); self.sp_overlay.setRange(0, 1); self.sp_overlay.setSingleStep(0.05)
        self.cb_flow = QComboBox(); self.cb_flow.addItems(FLOW_PRESETS)
        self.ed_music = QLineEdit(); self.ed_music.setPlaceholderText("https://…")
        self.ed_submit_label = QLineEdit(); self.ed_submit_label.setPlaceholderText("Send RSVP")
        self.btn_submit_color = ColorButton(allow_clear=True)
        self.btn_submit_text = ColorButton(allow_clear=True)

        form.addRow("Accent", self.btn_accent)
        form.addRow("Background", self.cb_bg_type)
        form.addRow("Background colour", self.btn_bg_color)
        form.addRow("Background asset", self.ed_bg_asset)
        form.addRow("Overlay", self.sp_overlay)
        form.addRow("Flow", self.cb_flow)
        form.addRow("Music", self.ed_music)
        form.addRow("Submit label", self.ed_submit_label)
        form.addRow("Submit colour", self.btn_submit_color)
        form.addRow("Submit text", self.btn_submit_text)

        self.btn_accent.colorChanged.connect(lambda c: self._set(accent_color=c))
        self.cb_bg_type.currentTextChanged.connect(lambda t: self._set(background_type=t))
        self.btn_bg_color.colorChanged.connect(lambda c: self._set(background_color=c))
        self.ed_bg_asset.textEdited.connect(lambda t: self._set(background_asset=t))
        self.sp_overlay.valueChanged.connect(lambda v: self._set(overlay=float(v)))
        self.cb_flow.currentTextChanged.connect(lambda t: self._set(flow_preset=t))
        self.ed_music.textEdited.connect(lambda t: self._set(music_url=t or None))
        self.ed_submit_label.textEdited.connect(lambda t: self._set(submit_button_label=t or None))
        self.btn_submit_color.colorChanged.connect(lambda c: self._set(submit_button_color=c or None))
        self.btn_submit_text.colorChanged.connect(lambda c: self._set(submit_button_text_color=c or None))
        self.load()

    def _set(self, **patch):
        if not self._loading:
            self.document.set_global(**patch)

    def load(self):
        d = self.document.design
        self._loading = True
        self.btn_accent.set_color(d.accent_color)
        self.cb_bg_type.setCurrentText(d.background_type)
        self.btn_bg_color.set_color(d.background_color)
        self.ed_bg_asset.setText(d.background_asset or "")
        self.sp_overlay.setValue(d.overlay)
        self.cb_flow.setCurrentText(d.flow_preset)
        self.ed_music.setText(d.music_url or "")
        self.ed_submit_label.setText(d.submit_button_label or "")
        self.btn_submit_color.set_color(d.submit_button_color)
        self.btn_submit_text.set_color(d.submit_button_text_color)
        self._loading = False


# ===== Page =====

class DesignerPage(QMainWindow):
    dirtyChanged = Signal(bool)

    def __init__(self, event: Event, api: ApiClient, cache: QueryCache, storage: LocalStorage,
                 settings: Settings, parent=None):
        super().__init__(parent)
        self.setWindowFlags(Qt.Widget)
        self.event = event
        self.api = api
        self.cache = cache
        self.storage = storage
        self.settings = settings
        self.dirty = False
        self.loaded = False
        self.document = DesignDocument(default_design(event.title), on_change=self._on_document_changed)
        self.document.design.event_guid = event.id

        self.block_list = BlockListWidget(self.document)
        self.editor = BlockEditor(self.document)
        self.globals = GlobalSettingsPanel(self.document)

        left = QWidget(); col = QVBoxLayout(left); col.setContentsMargins(6, 6, 6, 6)
        col.addWidget(self.block_list, 1)
        row = QHBoxLayout()
        btn_up = QPushButton("Move up"); btn_down = QPushButton("Move down")
        btn_up.clicked.connect(lambda: self.block_list.move_current(-1))
        btn_down.clicked.connect(lambda: self.block_list.move_current(1))
        row.addWidget(btn_up); row.addWidget(btn_down)
        col.addLayout(row)
        self.blocks_dock = QDockWidget("Blocks", self)
        self.blocks_dock.setWidget(left)
        self.blocks_dock.setMinimumWidth(260)
        self.addDockWidget(Qt.LeftDockWidgetArea, self.blocks_dock)

        self.globals_dock = QDockWidget("Style", self)
        self.globals_dock.setWidget(self.globals)
        self.addDockWidget(Qt.RightDockWidgetArea, self.globals_dock)

        central = QWidget(); ccol = QVBoxLayout(central); ccol.setContentsMargins(8, 8, 8, 8)
        self.lbl_state = QLabel("Loading design…")
        self.lbl_state.setStyleSheet("color:#667085;")
        self.lbl_link = QLabel("")
        self.lbl_link.setTextInteractionFlags(Qt.TextSelectableByMouse)
        ccol.addWidget(self.lbl_state)
        ccol.addWidget(self.lbl_link)
        ccol.addWidget(self.editor, 1)
        self.setCentralWidget(central)
        self.toast = Toast(central, settings.toast_ms)

        self._build_toolbar()
        self.block_list.blockSelected.connect(self.editor.load_block)
        self.block_list.refresh()

        self.cache.updated.connect(self._on_query_updated)
        self.cache.failed.connect(self._on_query_failed)
        self.cache.register(self.fields_key, lambda: self.api.list_form_fields(event.id))
        self.cache.register(self.design_key, lambda: self.api.get_rsvp_design(event.id))

    @property
    def design(self) -> RsvpDesign:
        return self.document.design

    @property
    def fields_key(self) -> str:
        return form_fields_key(self.event.id)

    @property
    def design_key(self) -> str:
        return design_key(self.event.id)

    # ---------- toolbar ----------
    def _build_toolbar(self):
        tb = QToolBar("Design", self)
        tb.setMovable(False)
        self.addToolBar(Qt.TopToolBarArea, tb)

        def add_menu_button(title: str, menu_builder: Callable[[QMenu], None]) -> QMenu:
            btn = QToolButton(self)
            btn.setText(title)
            btn.setPopupMode(QToolButton.InstantPopup)
            btn.setToolButtonStyle(Qt.ToolButtonTextOnly)
            m = QMenu(btn); menu_builder(m)
            btn.setMenu(m)
            wa = QWidgetAction(self); wa.setDefaultWidget(btn)
            tb.addAction(wa)
            return m

        def build_blocks_menu(m: QMenu):
            for kind in BLOCK_TYPES:
                act = QAction(BLOCK_LABELS[kind], self)
                act.triggered.connect(lambda _=False, kind=kind: self.add_block(kind))
                m.addAction(act)
            m.addSeparator()
            act = QAction("Image gallery from files…", self)
            act.triggered.connect(self._add_image_block)
            m.addAction(act)
        add_menu_button("Add block", build_blocks_menu)

        self.questions_menu = add_menu_button("Add question", lambda m: None)
        self._fill_questions_menu()

        tb.addSeparator()
        self.act_save = QAction("Save", self); self.act_save.triggered.connect(self.save)
        self.act_publish = QAction("Publish", self); self.act_publish.triggered.connect(self.publish)
        self.act_link = QAction("Generate link", self); self.act_link.triggered.connect(self.generate_link)
        self.act_copy = QAction("Copy link", self); self.act_copy.triggered.connect(self.copy_link)
        self.act_preview = QAction("Preview", self); self.act_preview.triggered.connect(self.preview)
        self.act_guest_form = QAction("Open guest form", self)
        self.act_guest_form.triggered.connect(self.open_guest_form)
        for a in (self.act_save, self.act_publish, self.act_link, self.act_copy, self.act_preview,
                  self.act_guest_form):
            tb.addAction(a)
        self._sync_actions()

    def _fill_questions_menu(self):
        m = self.questions_menu
        m.clear()
        fields = self.design.form_field_configs
        if not fields:
            act = QAction("No form fields for this event", self); act.setEnabled(False)
            m.addAction(act)
            return
        linked = {b.question_id for b in self.design.blocks if isinstance(b, FormFieldBlock)}
        for f in fields:
            act = QAction(f"{f.label} ({f.type_key})", self)
            act.setEnabled(f.id not in linked)
            act.triggered.connect(lambda _=False, f=f: self.insert_question(f))
            m.addAction(act)

    def _sync_actions(self):
        self.act_publish.setEnabled(self.design.version is not None)
        self.act_copy.setEnabled(bool(self.design.public_link))
        self.act_guest_form.setEnabled(bool(self.design.share_token))
        state = "Unsaved changes" if self.dirty else "Saved"
        if self.design.version is not None:
            state += f" · version {self.design.version}"
        if self.loaded:
            self.lbl_state.setText(state)
        link = self.design.public_link
        self.lbl_link.setText(f"Public link: {link}" if link else "")

    def show_toast(self, message: str, icon: str = "✅"):
        self.toast.show_message(message, icon)

    # ---------- document ----------
    def _on_document_changed(self):
        self.block_list.refresh()
        if not self.dirty:
            self.dirty = True
            self.dirtyChanged.emit(True)
        if self.design.share_token:
            save_share_snapshot(self.storage, self.design.share_token, self.design, self.event.title)
        self._sync_actions()

    def _reset_document(self, design: RsvpDesign):
        design.event_guid = design.event_guid or self.event.id
        if not design.form_field_configs:
            design.form_field_configs = list(self.cache.get(self.fields_key) or [])
        if design.share_token and not design.public_link:
            design.public_link = public_link(self.settings.public_base_url, design.share_token)
        self.document.design = design
        self.dirty = False
        self.dirtyChanged.emit(False)
        self.block_list.refresh()
        self.editor.load_block(None)
        self.globals.load()
        self._fill_questions_menu()
        self._sync_actions()

    def add_block(self, kind: str) -> RsvpBlock:
        block = self.document.add_block(kind)
        self.block_list.select_block(block.id)
        return block

    def insert_question(self, f: FormFieldConfig):
        block = self.document.insert_question_block(f)
        if block is None:
            self.show_toast("That question is already on the card", "⚠️")
            return
        self._fill_questions_menu()
        self.block_list.select_block(block.id)

    def _add_image_block(self):
        paths, _ = QFileDialog.getOpenFileNames(self, "Choose images", "", IMAGE_FILTER)
        if paths:
            block = self.document.add_image_block(paths)
            self.block_list.select_block(block.id)

    # ---------- queries ----------
    def _on_query_updated(self, key: str):
        if key == self.fields_key:
            self.design.form_field_configs = list(self.cache.get(key) or [])
            self._fill_questions_menu()
            self.editor.reload()
        elif key == self.design_key:
            if self.dirty and self.loaded:
                logger.info("Server design refreshed while local edits are pending; keeping local copy")
                return
            body = self.cache.get(key)
            self.loaded = True
            self._reset_document(to_frontend_design(body) if body else default_design(self.event.title))

    def _on_query_failed(self, key: str, err: ApiError):
        if key == self.design_key:
            self.loaded = True
            self.lbl_state.setText(f"Couldn't load the saved design: {err}")
        elif key == self.fields_key:
            self.show_toast("Couldn't load form fields", "❌")

    # ---------- actions ----------
    def save(self):
        if not validate_design(self.design):
            QMessageBox.warning(self, "Save design", "Add at least one block and pick accent and background colours.")
            return
        payload = to_backend_payload(self.design, self.event.id)

        def saved(result):
            if isinstance(result, dict) and result.get("version") is not None:
                self.design.version = int(result["version"])
            self.dirty = False
            self.dirtyChanged.emit(False)
            self._sync_actions()
            self.show_toast("Design saved!", "💾")

        self.cache.run_mutation(lambda: self.api.save_rsvp_design(self.event.id, payload), saved,
                                lambda err: self.show_toast(f"Failed to save design: {err}", "❌"))

    def publish(self):
        version = self.design.version
        if version is None:
            self.show_toast("Save the design before publishing", "⚠️")
            return
        self.cache.run_mutation(lambda: self.api.publish_rsvp_design(self.event.id, version),
                                lambda _: self.show_toast("Design published!", "🚀"),
                                lambda err: self.show_toast(f"Failed to publish: {err}", "❌"),
                                invalidate=(self.design_key,))

    def generate_link(self):
        token = self.design.share_token or generate_share_token()
        link = public_link(self.settings.public_base_url, token)
        self.document.set_global(share_token=token, public_link=link)
        save_share_snapshot(self.storage, token, self.design, self.event.title)
        self.show_toast("Share link ready", "🔗")

    def copy_link(self):
        if not self.design.public_link:
            return
        QGuiApplication.clipboard().setText(self.design.public_link)
        self.show_toast("Link copied", "📋")

    def preview(self):
        dlg = PublicRsvpDialog(self.design, self.event.id, preview=True, parent=self)
        dlg.exec()

    def open_guest_form(self):
        """Fill in the card the way a guest would, through the share token."""
        token = self.design.share_token
        if not token:
            return

        def loaded(design: Optional[RsvpDesign]):
            if design is None:
                self.show_toast("This RSVP link is not available", "❌")
                return
            dlg = PublicRsvpDialog(design, design.event_guid or self.event.id, parent=self)

            def submit(sub):
                self.cache.run_mutation(
                    lambda: self.api.submit_public_rsvp(sub.event_id, sub.to_payload()),
                    lambda _: dlg.show_success(sub.guest_name),
                    lambda err: dlg.show_failure(),
                )

            dlg.submitted.connect(submit)
            dlg.exec()

        self.cache.call(lambda: load_public_design(self.api, self.storage, token), loaded)
