# bigday/__init__.py
from .api import ApiClient, Credentials
from .canvas import CanvasController
from .config import Settings, configure_logging, get_settings
from .design import DesignDocument, ReorderGesture, RsvpDesign, default_design
from .errors import ApiError, ConflictError, ConsoleError, ValidationError
from .models import Event, FloorItem, FormFieldConfig, Guest, ItemKind, Table, TableShape, ToolMode
from .queries import QueryCache
from .storage import LocalStorage, TokenStore
from .store import FloorPlanStore

__version__ = "0.3.0"
