"""
TLE Parser Module

Parses Two-Line Element sets according to the standard NORAD fixed-column
format and turns them into structured orbital elements.

TLE Format:
A TLE is an optional name line followed by two 69-character data lines. The
last character of each data line is a modulo-10 checksum of the preceding 68
characters, where digits count as their value, '-' counts as 1 and every
other character counts as 0.

Checksum policy:
A checksum mismatch is logged as a warning and the record is still parsed.
Set ``strict_checksum=True`` to reject such records instead.

Two entry shapes are accepted and produce the same representation:
- plain text with consecutive name / line 1 / line 2 groups (CelesTrak)
- JSON objects exposing TLE_LINE0 / TLE_LINE1 / TLE_LINE2 (Space-Track)

References:
- CelesTrak TLE format documentation: https://celestrak.org/NORAD/documentation/tle-fmt.php
"""

import math
from datetime import datetime, timedelta, timezone
from typing import Any, Iterable, List, Mapping

from satellite_catalog.config import EPOCH_YEAR_PIVOT
from satellite_catalog.exceptions import ChecksumError, InvalidTLEError
from satellite_catalog.logging_config import get_logger
from satellite_catalog.models import OrbitalElements, ParsedTLE, SatelliteMetadata, TLEEntry
from satellite_catalog.orbital_mechanics import orbital_period, semi_major_axis

logger = get_logger(__name__)

TLE_LINE_LENGTH = 69


class TLEParser:
    """
    Parser for Two-Line Element sets.

    Provides methods for:
    - Validating line length, line numbers and checksums
    - Extracting orbital elements from fixed columns
    - Splitting raw text or JSON payloads into entries
    - Parsing whole batches, dropping malformed records
    """

    def __init__(self, strict_checksum: bool = False):
        """
        Initialize TLE parser.

        Args:
            strict_checksum: Reject records whose checksum does not match
                instead of logging a warning
        """
        self.strict_checksum = strict_checksum

    # ==================== Entry splitting ====================

    @staticmethod
    def split_text(raw_text: str) -> List[TLEEntry]:
        """
        Split a raw text payload into consecutive three-line groups.

        A trailing group with fewer than three lines is dropped.

        Args:
            raw_text: Text containing name / line 1 / line 2 groups

        Returns:
            List of TLE entries, one per complete group
        """
        lines = [line.strip() for line in (raw_text or "").strip().splitlines()]
        entries = []
        for i in range(0, len(lines) - 2, 3):
            entries.append(TLEEntry(lines[i], lines[i + 1], lines[i + 2]))
        return entries

    @staticmethod
    def entries_from_json(items: Iterable[Mapping[str, Any]]) -> List[TLEEntry]:
        """
        Convert Space-Track style JSON objects into TLE entries.

        Objects missing any of TLE_LINE0, TLE_LINE1 or TLE_LINE2 are skipped.
        """
        entries = []
        for item in items:
            if not isinstance(item, Mapping):
                continue
            name = item.get("TLE_LINE0")
            line1 = item.get("TLE_LINE1")
            line2 = item.get("TLE_LINE2")
            if not (name and line1 and line2):
                continue
            name = str(name).strip()
            # Space-Track prefixes the name line with the "0 " line number
            if name.startswith("0 "):
                name = name[2:].strip()
            entries.append(TLEEntry(name, str(line1).strip(), str(line2).strip()))
        return entries

    # ==================== Validation ====================

    @staticmethod
    def checksum(line: str) -> int:
        """Calculate the TLE checksum of the first 68 characters of a line."""
        total = 0
        for char in line[:TLE_LINE_LENGTH - 1]:
            if char.isdigit():
                total += int(char)
            elif char == "-":
                total += 1
        return total % 10

    def verify_checksum(self, line: str) -> bool:
        """Return True if the line's final character matches its checksum."""
        if len(line) < TLE_LINE_LENGTH:
            return False
        expected = line[TLE_LINE_LENGTH - 1]
        return expected.isdigit() and int(expected) == self.checksum(line)

    def validate(self, name: str, line1: str, line2: str) -> None:
        """
        Check structure and checksums of one TLE.

        Raises:
            InvalidTLEError: Name missing, wrong line length or line number
            ChecksumError: Checksum mismatch in strict mode
        """
        if not name or not line1 or not line2:
            raise InvalidTLEError("TLE entry is missing a line", name)
        if len(line1) != TLE_LINE_LENGTH or len(line2) != TLE_LINE_LENGTH:
            raise InvalidTLEError(
                f"TLE lines must be {TLE_LINE_LENGTH} characters "
                f"(got {len(line1)} and {len(line2)})",
                name,
            )
        if line1[0] != "1" or line2[0] != "2":
            raise InvalidTLEError("TLE line numbers must be 1 and 2", name)

        for line_number, line in ((1, line1), (2, line2)):
            if self.verify_checksum(line):
                continue
            if self.strict_checksum:
                raise ChecksumError(
                    f"Checksum mismatch on line {line_number}", name, line_number
                )
            logger.warning(
                "TLE checksum mismatch",
                name=name,
                line=line_number,
                expected=self.checksum(line),
                found=line[-1],
            )

    # ==================== Parsing ====================

    def parse_entry(self, entry: TLEEntry) -> ParsedTLE:
        return self.parse_tle(entry.line1, entry.line2, entry.name)

    def parse_tle(self, line1: str, line2: str, name: str = "") -> ParsedTLE:
        """
        Parse TLE lines into structured data.

        Args:
            line1: First line of TLE
            line2: Second line of TLE
            name: Satellite name (line 0)

        Returns:
            Parsed TLE with orbital elements and catalog metadata

        Raises:
            InvalidTLEError: The record is malformed and must be dropped
        """
        name = (name or "").strip()
        self.validate(name, line1, line2)

        try:
            catalog_id = line1[2:7].strip()
            classification = line1[7].strip() or "U"
            international_designator = line1[9:17].strip()
            epoch_year = int(line1[18:20])
            epoch_days = float(line1[20:32])
            mean_motion_dot = float(line1[33:43])
            mean_motion_ddot = self._parse_implied_decimal(line1[44:52])
            bstar = self._parse_implied_decimal(line1[53:61])

            inclination = float(line2[8:16])
            raan = float(line2[17:25])
            eccentricity = float("0." + line2[26:33].strip())
            arg_perigee = float(line2[34:42])
            mean_anomaly = float(line2[43:51])
            mean_motion = float(line2[52:63])
            revolution_number = int(line2[63:68].strip() or 0)

            epoch = self.epoch_to_datetime(epoch_year, epoch_days)
        except (ValueError, OverflowError) as e:
            raise InvalidTLEError(f"Unreadable TLE field: {e}", name) from e

        numeric_fields = (
            epoch_days, mean_motion_dot, mean_motion_ddot, bstar, inclination, raan,
            eccentricity, arg_perigee, mean_anomaly, mean_motion,
        )
        if not all(math.isfinite(value) for value in numeric_fields):
            raise InvalidTLEError("TLE field is not a finite number", name)

        if not catalog_id:
            raise InvalidTLEError("TLE has no catalog number", name)

        try:
            elements = OrbitalElements(
                semi_major_axis=semi_major_axis(mean_motion),
                eccentricity=eccentricity,
                inclination=inclination,
                right_ascension=raan,
                argument_of_periapsis=arg_perigee,
                mean_anomaly=mean_anomaly,
                epoch=epoch,
                mean_motion=mean_motion,
                period=orbital_period(mean_motion),
                mean_motion_dot=mean_motion_dot,
                mean_motion_ddot=mean_motion_ddot,
                bstar=bstar,
                revolution_number=revolution_number,
            )
        except ValueError as e:
            raise InvalidTLEError(f"Orbital elements out of range: {e}", name) from e

        return ParsedTLE(
            catalog_id=catalog_id,
            name=name,
            line1=line1,
            line2=line2,
            elements=elements,
            metadata=SatelliteMetadata(
                catalog_id=catalog_id,
                international_designator=international_designator,
                classification=classification,
            ),
        )

    def parse_entries(self, entries: Iterable[TLEEntry]) -> List[ParsedTLE]:
        """
        Parse a batch of entries, dropping the ones that fail validation.

        Args:
            entries: TLE entries from either provider

        Returns:
            Parsed records in input order
        """
        parsed = []
        rejected = 0
        for entry in entries:
            try:
                parsed.append(self.parse_entry(entry))
            except InvalidTLEError as e:
                rejected += 1
                logger.debug("Dropping malformed TLE", name=entry.name, reason=str(e))

        logger.debug("TLE batch parsed", parsed=len(parsed), rejected=rejected)
        return parsed

    def parse_text(self, raw_text: str) -> List[ParsedTLE]:
        """Parse a CelesTrak style text payload."""
        return self.parse_entries(self.split_text(raw_text))

    def parse_json(self, items: Iterable[Mapping[str, Any]]) -> List[ParsedTLE]:
        """Parse a Space-Track style JSON payload."""
        return self.parse_entries(self.entries_from_json(items))

    # ==================== Field helpers ====================

    def epoch_to_datetime(self, epoch_year: int, epoch_days: float) -> datetime:
        """
        Convert TLE epoch to datetime.

        Args:
            epoch_year: Two-digit year
            epoch_days: Day of year with fractional part

        Returns:
            Datetime object in UTC
        """
        year = 2000 + epoch_year if epoch_year < EPOCH_YEAR_PIVOT else 1900 + epoch_year
        return self._epoch_to_datetime(year, epoch_days)

    def _epoch_to_datetime(self, year: int, days: float) -> datetime:
        """Convert year and fractional days to datetime."""
        dt = datetime(year, 1, 1, tzinfo=timezone.utc)

        # -1 because day 1 is Jan 1
        return dt + timedelta(days=days - 1.0)

    def _parse_implied_decimal(self, field: str) -> float:
        """
        Parse a TLE field in implied-decimal exponent notation.

        Examples: " 21844-3" -> 0.21844e-3, "-11606-4" -> -0.11606e-4,
        " 00000+0" -> 0.0
        """
        text = field.strip()
        if not text:
            return 0.0

        sign = -1.0 if text[0] == "-" else 1.0
        if text[0] in "+-":
            text = text[1:]

        mantissa, exponent = text[:-2].strip(), text[-2:]
        if not mantissa.isdigit() or exponent[0] not in "+-" or not exponent[1].isdigit():
            raise ValueError(f"bad exponent field {field!r}")

        return sign * float("0." + mantissa) * 10.0 ** int(exponent)
