"""GPX and FIT activity files as a replayable location source."""

import codecs
import logging
import os
import re
from typing import BinaryIO

import fitparse
import gpxpy
import gpxpy.gpx
from pydantic import ValidationError

from astate.core.constants import SEMICIRCLES_TO_DEGREES
from astate.schemas.location import LocationFix

logger = logging.getLogger(__name__)

SUPPORTED_EXTENSIONS = (".gpx", ".fit")

_XML_ENCODING = re.compile(rb"^\s*<\?xml[^>]*?encoding\s*=\s*['\"]([A-Za-z0-9._:-]+)['\"]")


class ActivityFileError(ValueError):
    """The file is not a readable GPX/FIT activity."""


def _semicircles_to_degrees(val):
    return val * SEMICIRCLES_TO_DEGREES if val is not None else None


def _decode_xml(data: bytes) -> str:
    """Decode with the encoding named in the XML declaration (UTF-8 when none is)."""
    if data.startswith(codecs.BOM_UTF8):
        data = data[len(codecs.BOM_UTF8):]
    m = _XML_ENCODING.match(data)
    encoding = "utf-8"
    if m:
        encoding = m.group(1).decode("ascii")
        # The text handed to gpxpy is already decoded; the declaration must agree.
        data = data[:m.start(1)] + b"UTF-8" + data[m.end(1):]
    try:
        return data.decode(encoding)
    except (LookupError, UnicodeDecodeError) as e:
        raise ActivityFileError(f"Invalid GPX encoding: {e}") from e


def read_gpx_fixes(f: BinaryIO) -> list[LocationFix]:
    data = f.read()
    if isinstance(data, bytes):
        data = _decode_xml(data)
    try:
        gpx = gpxpy.parse(data)
    except gpxpy.gpx.GPXException as e:
        raise ActivityFileError(f"Invalid GPX: {e}") from e

    fixes = []
    skipped = 0
    for track in gpx.tracks:
        for segment in track.segments:
            for i, p in enumerate(segment.points):
                if p.time is None:
                    skipped += 1
                    continue
                speed = p.speed if p.speed is not None else segment.get_speed(i)
                try:
                    fixes.append(
                        LocationFix(
                            timestamp=p.time,
                            latitude=p.latitude,
                            longitude=p.longitude,
                            altitude=p.elevation if p.elevation is not None else 0.0,
                            speed=speed,
                        )
                    )
                except ValidationError:
                    skipped += 1
    if skipped:
        logger.warning("Skipped %s GPX points without a usable time/position", skipped)
    return fixes


def read_fit_fixes(f: BinaryIO) -> list[LocationFix]:
    try:
        ff = fitparse.FitFile(f)
        messages = list(ff.get_messages("record"))
    except fitparse.FitParseError as e:
        raise ActivityFileError(f"Invalid FIT: {e}") from e

    fixes = []
    skipped = 0
    for record in messages:
        fields = {fld.name: fld.value for fld in record}
        ts = fields.get("timestamp")
        lat = _semicircles_to_degrees(fields.get("position_lat"))
        lon = _semicircles_to_degrees(fields.get("position_long"))
        if ts is None or lat is None or lon is None:
            # Indoor records carry no position
            skipped += 1
            continue
        # Prefer enhanced fields when present
        ele = fields.get("enhanced_altitude")
        if ele is None:
            ele = fields.get("altitude")
        speed = fields.get("enhanced_speed")  # m/s
        if speed is None:
            speed = fields.get("speed")
        try:
            fixes.append(
                LocationFix(
                    timestamp=ts,
                    latitude=lat,
                    longitude=lon,
                    altitude=float(ele) if ele is not None else 0.0,
                    speed=speed,
                )
            )
        except ValidationError:
            skipped += 1
    if skipped:
        logger.warning("Skipped %s FIT records without a usable time/position", skipped)
    return fixes


def read_activity_fixes(filename: str, f: BinaryIO) -> list[LocationFix]:
    """Fixes from a .gpx or .fit file in time order."""
    ext = os.path.splitext(filename)[1].lower()
    if ext == ".gpx":
        fixes = read_gpx_fixes(f)
    elif ext == ".fit":
        fixes = read_fit_fixes(f)
    else:
        raise ActivityFileError("Only .gpx or .fit files are supported")
    fixes.sort(key=lambda fix: fix.timestamp)
    return fixes
