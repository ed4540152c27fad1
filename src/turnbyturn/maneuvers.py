# maneuvers.py
# Maps each backend's maneuver vocabulary onto ManeuverKind.
# Pure lookup functions: unknown codes degrade, they never raise.

from typing import Dict, Optional

from .models import ManeuverKind as M


# ---------------------------------------------------------------------------
# OSRM: (maneuver.type, maneuver.modifier)
# ---------------------------------------------------------------------------

# type → (modifier table, kind used when the modifier is missing/unknown)
_OSRM_TABLE: Dict[str, tuple] = {
    "depart": ({}, M.DEPART),
    "arrive": ({}, M.ARRIVE),
    "turn": ({
        "left": M.TURN_LEFT,
        "right": M.TURN_RIGHT,
        "slight left": M.TURN_SLIGHT_LEFT,
        "slight right": M.TURN_SLIGHT_RIGHT,
        "sharp left": M.TURN_SHARP_LEFT,
        "sharp right": M.TURN_SHARP_RIGHT,
        "uturn": M.UTURN,
        "straight": M.STRAIGHT,
    }, M.CONTINUE),
    "new name": ({
        "left": M.NEW_NAME_LEFT,
        "right": M.NEW_NAME_RIGHT,
        "straight": M.NEW_NAME_STRAIGHT,
    }, M.CONTINUE),
    "continue": ({
        "left": M.CONTINUE_LEFT,
        "right": M.CONTINUE_RIGHT,
        "slight left": M.CONTINUE_SLIGHT_LEFT,
        "slight right": M.CONTINUE_SLIGHT_RIGHT,
        "straight": M.CONTINUE_STRAIGHT,
        "uturn": M.CONTINUE_UTURN,
    }, M.CONTINUE),
    "merge": ({
        "left": M.MERGE_LEFT,
        "right": M.MERGE_RIGHT,
        "slight left": M.MERGE_SLIGHT_LEFT,
        "slight right": M.MERGE_SLIGHT_RIGHT,
    }, M.MERGE),
    "on ramp": ({}, M.ON_RAMP),
    "off ramp": ({}, M.OFF_RAMP),
    "fork": ({
        "left": M.FORK_LEFT,
        "right": M.FORK_RIGHT,
        "slight left": M.FORK_SLIGHT_LEFT,
        "slight right": M.FORK_SLIGHT_RIGHT,
    }, M.CONTINUE),
    "end of road": ({
        "left": M.END_OF_ROAD_LEFT,
        "right": M.END_OF_ROAD_RIGHT,
    }, M.CONTINUE),
    "roundabout": ({
        "left": M.ROUNDABOUT_LEFT,
        "right": M.ROUNDABOUT_RIGHT,
        "straight": M.ROUNDABOUT_STRAIGHT,
        "sharp left": M.ROUNDABOUT_SHARP_LEFT,
        "sharp right": M.ROUNDABOUT_SHARP_RIGHT,
        "slight left": M.ROUNDABOUT_SLIGHT_LEFT,
        "slight right": M.ROUNDABOUT_SLIGHT_RIGHT,
    }, M.ROUNDABOUT),
    "roundabout turn": ({}, M.ROUNDABOUT_EXIT),
    "exit roundabout": ({}, M.ROUNDABOUT_EXIT),
    "exit rotary": ({}, M.ROUNDABOUT_EXIT),
    "notification": ({
        "left": M.NOTIFICATION_LEFT,
        "right": M.NOTIFICATION_RIGHT,
        "straight": M.NOTIFICATION_STRAIGHT,
    }, M.CONTINUE),
}
_OSRM_TABLE["rotary"] = _OSRM_TABLE["roundabout"]


def from_osrm(maneuver_type: Optional[str], modifier: Optional[str] = None) -> M:
    entry = _OSRM_TABLE.get((maneuver_type or "").lower())
    if entry is None:
        return M.UNKNOWN
    modifiers, fallback = entry
    return modifiers.get((modifier or "").lower(), fallback)


# ---------------------------------------------------------------------------
# OpenRouteService: integer instruction type
# ---------------------------------------------------------------------------

ORS_TYPES: Dict[int, M] = {
    0: M.TURN_LEFT,
    1: M.TURN_RIGHT,
    2: M.TURN_SHARP_LEFT,
    3: M.TURN_SHARP_RIGHT,
    4: M.TURN_SLIGHT_LEFT,
    5: M.TURN_SLIGHT_RIGHT,
    6: M.CONTINUE,
    7: M.ROUNDABOUT,
    8: M.ROUNDABOUT_EXIT,
    9: M.UTURN,
    10: M.ARRIVE,
    11: M.DEPART,
    12: M.FORK_LEFT,     # keep left
    13: M.FORK_RIGHT,    # keep right
}


def from_ors(code) -> M:
    try:
        return ORS_TYPES.get(int(code), M.UNKNOWN)
    except (TypeError, ValueError):
        return M.UNKNOWN


# ---------------------------------------------------------------------------
# Valhalla: integer maneuver type
# ---------------------------------------------------------------------------

VALHALLA_TYPES: Dict[int, M] = {
    0: M.UNKNOWN,
    1: M.DEPART, 2: M.DEPART, 3: M.DEPART,
    4: M.ARRIVE, 5: M.ARRIVE, 6: M.ARRIVE,
    7: M.CONTINUE,               # becomes (new name)
    8: M.CONTINUE,
    9: M.TURN_SLIGHT_RIGHT,
    10: M.TURN_RIGHT,
    11: M.TURN_SHARP_RIGHT,
    12: M.UTURN, 13: M.UTURN,
    14: M.TURN_SHARP_LEFT,
    15: M.TURN_LEFT,
    16: M.TURN_SLIGHT_LEFT,
    17: M.ON_RAMP, 18: M.ON_RAMP, 19: M.ON_RAMP,
    20: M.OFF_RAMP, 21: M.OFF_RAMP,
    22: M.CONTINUE_STRAIGHT,     # stay straight
    23: M.FORK_RIGHT,            # stay right
    24: M.FORK_LEFT,             # stay left
    25: M.MERGE,
    26: M.ROUNDABOUT,
    27: M.ROUNDABOUT_EXIT,
    28: M.CONTINUE, 29: M.CONTINUE,                   # ferry enter / exit
    30: M.CONTINUE, 31: M.CONTINUE, 32: M.CONTINUE,   # transit
    33: M.CONTINUE, 34: M.CONTINUE, 35: M.CONTINUE,
    36: M.CONTINUE,
    37: M.MERGE_RIGHT,
    38: M.MERGE_LEFT,
}


def from_valhalla(code) -> M:
    try:
        return VALHALLA_TYPES.get(int(code), M.UNKNOWN)
    except (TypeError, ValueError):
        return M.UNKNOWN


# ---------------------------------------------------------------------------
# Instruction text
# ---------------------------------------------------------------------------

# kind → (text with road, text without road)
_INSTRUCTIONS: Dict[M, tuple] = {
    M.DEPART: ("Head straight on {road}", "Start navigation"),
    M.ARRIVE: ("You have arrived at your destination", "You have arrived at your destination"),
    M.TURN_LEFT: ("Turn left onto {road}", "Turn left"),
    M.TURN_RIGHT: ("Turn right onto {road}", "Turn right"),
    M.TURN_SLIGHT_LEFT: ("Turn slightly left onto {road}", "Turn slightly left"),
    M.TURN_SLIGHT_RIGHT: ("Turn slightly right onto {road}", "Turn slightly right"),
    M.TURN_SHARP_LEFT: ("Turn sharp left onto {road}", "Turn sharp left"),
    M.TURN_SHARP_RIGHT: ("Turn sharp right onto {road}", "Turn sharp right"),
    M.STRAIGHT: ("Continue on {road}", "Continue straight"),
    M.CONTINUE: ("Continue on {road}", "Continue straight"),
    M.ROUNDABOUT: ("Enter the roundabout towards {road}", "Enter the roundabout"),
    M.ROUNDABOUT_EXIT: ("Exit the roundabout onto {road}", "Exit the roundabout"),
    M.ROUNDABOUT_LEFT: ("At the roundabout, turn left onto {road}", "At the roundabout, turn left"),
    M.ROUNDABOUT_RIGHT: ("At the roundabout, turn right onto {road}", "At the roundabout, turn right"),
    M.ROUNDABOUT_STRAIGHT: ("At the roundabout, continue straight onto {road}",
                            "At the roundabout, continue straight"),
    M.ROUNDABOUT_SHARP_LEFT: ("At the roundabout, turn sharp left onto {road}",
                              "At the roundabout, turn sharp left"),
    M.ROUNDABOUT_SHARP_RIGHT: ("At the roundabout, turn sharp right onto {road}",
                               "At the roundabout, turn sharp right"),
    M.ROUNDABOUT_SLIGHT_LEFT: ("At the roundabout, turn slightly left onto {road}",
                               "At the roundabout, turn slightly left"),
    M.ROUNDABOUT_SLIGHT_RIGHT: ("At the roundabout, turn slightly right onto {road}",
                                "At the roundabout, turn slightly right"),
    M.UTURN: ("Make a U-turn onto {road}", "Make a U-turn"),
    M.CONTINUE_UTURN: ("Make a U-turn onto {road}", "Make a U-turn"),
    M.MERGE: ("Merge onto {road}", "Merge"),
    M.MERGE_LEFT: ("Merge left onto {road}", "Merge left"),
    M.MERGE_RIGHT: ("Merge right onto {road}", "Merge right"),
    M.ON_RAMP: ("Take the ramp to {road}", "Take the ramp"),
    M.OFF_RAMP: ("Exit onto {road}", "Take the exit"),
    M.FORK_LEFT: ("Keep left onto {road}", "Keep left"),
    M.FORK_RIGHT: ("Keep right onto {road}", "Keep right"),
    M.FORK_SLIGHT_LEFT: ("Keep slightly left onto {road}", "Keep slightly left"),
    M.FORK_SLIGHT_RIGHT: ("Keep slightly right onto {road}", "Keep slightly right"),
    M.END_OF_ROAD_LEFT: ("At the end of the road, turn left onto {road}",
                         "At the end of the road, turn left"),
    M.END_OF_ROAD_RIGHT: ("At the end of the road, turn right onto {road}",
                          "At the end of the road, turn right"),
}


def build_instruction(kind: M, road_name: Optional[str] = None) -> str:
    """
    Human-readable instruction for a maneuver.

    Args:
        kind:      Normalised maneuver.
        road_name: Road after the maneuver, if known.

    Returns:
        Instruction string.
    """
    with_road, without_road = _INSTRUCTIONS.get(kind, ("Continue to {road}", "Continue"))
    if road_name:
        return with_road.format(road=road_name)
    return without_road
