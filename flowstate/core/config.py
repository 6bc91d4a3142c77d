import json
import math
from dataclasses import dataclass, asdict
from flowstate.common.logger import log
from flowstate.common.setup import PATHS
from flowstate.util import now_iso


_SCHEMA_VERSION = 1

#region === Helpers and Paths ===

STATE_PATH = PATHS.current / "state.json"

# Default values just for the settings section of the state dict.
_SETTINGS_DEFAULTS = {
    "flow_divisor": 5,
    "idle_threshold_minutes": 180,
    "countdown_minutes": 25,
    "break_extend_minutes": 5,
    "show_streaks": True,
}

_DEFAULT_TAGS = ["Deep Work", "Admin", "Meeting", "Reading"]
_DEFAULT_DISTRACTIONS = ["Phone", "Social Media", "People", "Tired", "Random Thoughts", "Hungry", "Noise"]

_DEFAULT_CATEGORIES = [
    {"id": "default-1", "name": "Work", "color": "#3b82f6"},
    {"id": "default-2", "name": "Study", "color": "#8b5cf6"},
    {"id": "default-3", "name": "Exercise", "color": "#10b981"},
]

# Typed, validated view of the settings section. Anything non-numeric or out of range falls back to its default.
@dataclass(frozen=True)
class Settings:
    flow_divisor: float = _SETTINGS_DEFAULTS["flow_divisor"]
    idle_threshold_minutes: float = _SETTINGS_DEFAULTS["idle_threshold_minutes"]
    countdown_minutes: float = _SETTINGS_DEFAULTS["countdown_minutes"]
    break_extend_minutes: float = _SETTINGS_DEFAULTS["break_extend_minutes"]
    show_streaks: bool = _SETTINGS_DEFAULTS["show_streaks"]

    @property
    def idle_threshold_ms(self):
        return int(self.idle_threshold_minutes * 60_000)

    @property
    def countdown_ms(self):
        return int(self.countdown_minutes * 60_000)

    @property
    def break_extend_ms(self):
        return int(self.break_extend_minutes * 60_000)

    def to_dict(self):
        return asdict(self)

    @staticmethod
    def from_dict(raw):
        raw = raw if isinstance(raw, dict) else {}
        values = {}
        for key in ("flow_divisor", "idle_threshold_minutes", "countdown_minutes", "break_extend_minutes"):
            values[key] = _positive_number(raw.get(key), key)
        show = raw.get("show_streaks", _SETTINGS_DEFAULTS["show_streaks"])
        values["show_streaks"] = show if isinstance(show, bool) else _SETTINGS_DEFAULTS["show_streaks"]
        return Settings(**values)

# Parses a positive number setting, logging and falling back to the default for junk.
def _positive_number(value, key):
    default = _SETTINGS_DEFAULTS[key]
    if value is None:
        return default
    try:
        number = float(value)
    except (TypeError, ValueError):
        log.warning(f"Setting '{key}' has non-numeric value {value!r}, falling back to {default}")
        return default
    if isinstance(value, bool) or not math.isfinite(number) or number <= 0:
        log.warning(f"Setting '{key}' has out of range value {value!r}, falling back to {default}")
        return default
    return int(number) if number.is_integer() else number

# Helper to return a truly fresh, default state.
def build_default_state():
    return {
        "meta": {
            "schema_version": _SCHEMA_VERSION,
            "saved_at": now_iso(),
        },
        "settings": dict(_SETTINGS_DEFAULTS),
        "categories": [dict(c) for c in _DEFAULT_CATEGORIES],
        "selected_category_id": _DEFAULT_CATEGORIES[0]["id"],
        "all_tags": list(_DEFAULT_TAGS),
        "distraction_presets": list(_DEFAULT_DISTRACTIONS),
        "timers": {},
        "drafts": {},
        "sessions": {},
        "stats": {
            "longest_streak": 0,
        },
    }

#endregion === Helpers and Paths ===

#region === Saving and Loading State ===

# Loads the unified state from STATE_PATH, filling in defaults for anything missing so callers can index freely.
def load_state():
    try:
        if not STATE_PATH.exists():
            log.info("No existing state.json found in `current`, loading fresh state dict.")
            return build_default_state()

        with open(STATE_PATH, "r", encoding="utf-8") as f:
            state = json.load(f)
        if not isinstance(state, dict):
            raise TypeError(f"state.json top level is {type(state).__name__}, expected an object")
        defaulted_values = set()

        # Validate the meta dict
        if "meta" not in state or not isinstance(state["meta"], dict):
            defaulted_values.add("meta")
            state["meta"] = {}
        if not isinstance(state["meta"].get("schema_version"), int):
            defaulted_values.add("meta.schema_version")
            state["meta"]["schema_version"] = _SCHEMA_VERSION

        # Validate the settings dict, fill in any necessary defaults
        if "settings" not in state or not isinstance(state["settings"], dict):
            defaulted_values.add("settings")
            state["settings"] = dict(_SETTINGS_DEFAULTS)
        else:
            for key, default in _SETTINGS_DEFAULTS.items():
                if key not in state["settings"]:
                    defaulted_values.add(f"settings.{key}")
                    state["settings"][key] = default

        # Categories must be a list of dicts with at least an id and a name
        categories = state.get("categories")
        if not isinstance(categories, list):
            defaulted_values.add("categories")
            state["categories"] = [dict(c) for c in _DEFAULT_CATEGORIES]
        else:
            kept = [c for c in categories if isinstance(c, dict) and "id" in c and "name" in c]
            if len(kept) != len(categories):
                defaulted_values.add("categories")
            state["categories"] = kept

        if not isinstance(state.get("selected_category_id"), str):
            defaulted_values.add("selected_category_id")
            state["selected_category_id"] = state["categories"][0]["id"] if state["categories"] else None

        for key, default in (("all_tags", _DEFAULT_TAGS), ("distraction_presets", _DEFAULT_DISTRACTIONS)):
            if not isinstance(state.get(key), list) or not all(isinstance(v, str) for v in state[key]):
                defaulted_values.add(key)
                state[key] = list(default)

        for key in ("timers", "drafts", "sessions"):
            if key not in state or not isinstance(state[key], dict):
                defaulted_values.add(key)
                state[key] = {}

        if "stats" not in state or not isinstance(state["stats"], dict):
            defaulted_values.add("stats")
            state["stats"] = {}
        if not isinstance(state["stats"].get("longest_streak"), int):
            defaulted_values.add("stats.longest_streak")
            state["stats"]["longest_streak"] = 0

        # Log results
        if defaulted_values:
            log.warning(f"Successfully loaded current state dict from '{STATE_PATH}', but with missing values that were defaulted: {', '.join(sorted(defaulted_values))}")
        else:
            log.info(f"Successfully loaded current state dict from '{STATE_PATH}'.")
        return state
    # Fall back to a fresh state dict in case of error, but warn in log
    except (json.JSONDecodeError, OSError, TypeError):
        log.warning("Ran into an error while trying to load state.json, falling back to loading a fresh state dict.",exc_info=True)
        return build_default_state()

# Write the given state to disk under STATE_PATH, via a sibling temp file that gets swapped in once fully written.
def save_state(state):
    state["meta"]["saved_at"] = now_iso()
    STATE_PATH.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = STATE_PATH.with_suffix(".json.tmp")
    with open(tmp_path, "w", encoding="utf-8") as f:
        json.dump(state, f, indent=2)
    tmp_path.replace(STATE_PATH)
    log.info(f"Successfully saved state to '{STATE_PATH}'")

#endregion === Saving and Loading State ===
