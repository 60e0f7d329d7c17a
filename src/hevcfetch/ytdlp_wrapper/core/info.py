"""Typed access to yt-dlp ``--dump-json`` output."""

import logging
from types import UnionType
from typing import Any, Union, get_origin

from ...exceptions import (
    YtdlpDataError,
    YtdlpFieldInvalidError,
    YtdlpFieldMissingError,
)
from ...types.stream_descriptor import StreamDescriptor
from ...types.video_info import VideoInfo

logger = logging.getLogger(__name__)

_NUMBER = (int, float)


def _as_int(value: int | float | None) -> int | None:
    return None if value is None else int(value)


def _as_float(value: int | float | None) -> float | None:
    return None if value is None else float(value)


class YtdlpInfo:
    """A wrapper around yt-dlp metadata for strongly-typed access.

    Provides type-safe access to fields in yt-dlp metadata dictionaries
    with validation and error handling for missing or invalid field types.
    The same wrapper is used for the top-level video and for each entry of
    its ``formats`` list.

    Attributes:
        _info_dict: The underlying yt-dlp metadata dictionary.
    """

    def __init__(self, info_dict: dict[str, Any]):
        self._info_dict = info_dict

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, YtdlpInfo):
            return NotImplemented
        return self._info_dict == other._info_dict

    def get_raw(self, field_name: str) -> Any | None:
        """Retrieve a field's value without any type checking."""
        return self._info_dict.get(field_name, None)

    def get[T](self, field_name: str, tpe: type[T] | tuple[type[T], ...]) -> T | None:
        """Retrieve a field value if it exists and matches the expected type(s).

        Args:
            field_name: The name of the field to retrieve.
            tpe: The expected type or a tuple of expected types for the field.

        Returns:
            The field's value if it exists, otherwise None.

        Raises:
            YtdlpFieldInvalidError: If the field exists but its type does not match.
        """
        if field_name not in self._info_dict or self._info_dict[field_name] is None:
            return None

        field = self._info_dict[field_name]

        origin = get_origin(tpe)
        # parameterized generics (e.g. list[int]) can only be checked by their origin
        check_type = origin if origin not in (None, Union, UnionType) else tpe

        if isinstance(field, check_type):
            return field
        raise YtdlpFieldInvalidError(
            field_name=field_name,
            expected_type=tpe,
            actual_value=field,
        )

    def required[T](self, field_name: str, tpe: type[T] | tuple[type[T], ...]) -> T:
        """Retrieve a required field value, ensuring it exists and matches the type.

        Raises:
            YtdlpFieldMissingError: If the field does not exist.
            YtdlpFieldInvalidError: If the field exists but its type does not match.
        """
        field = self.get(field_name, tpe)
        if field is None:
            raise YtdlpFieldMissingError(field_name=field_name)
        return field

    def to_stream_descriptor(self) -> StreamDescriptor:
        """Interpret this object as one entry of a ``formats`` list.

        Returns:
            The typed descriptor. ``filesize`` falls back to ``filesize_approx``.

        Raises:
            YtdlpFieldMissingError: If ``format_id`` or ``ext`` is absent.
            YtdlpFieldInvalidError: If a field has an unexpected type.
        """
        filesize = self.get("filesize", _NUMBER)
        if filesize is None:
            filesize = self.get("filesize_approx", _NUMBER)
        return StreamDescriptor(
            format_id=str(self.required("format_id", (str, int))),
            ext=self.required("ext", str),
            vcodec=self.get("vcodec", str),
            acodec=self.get("acodec", str),
            width=_as_int(self.get("width", _NUMBER)),
            height=_as_int(self.get("height", _NUMBER)),
            fps=_as_float(self.get("fps", _NUMBER)),
            tbr=_as_float(self.get("tbr", _NUMBER)),
            abr=_as_float(self.get("abr", _NUMBER)),
            filesize=_as_int(filesize),
        )

    def stream_descriptors(self) -> list[StreamDescriptor]:
        """Parse the ``formats`` list, skipping malformed entries.

        Raises:
            YtdlpFieldInvalidError: If ``formats`` is not a list.
        """
        raw_formats = self.get("formats", list[dict[str, Any]])
        if raw_formats is None:
            return []

        descriptors: list[StreamDescriptor] = []
        for index, raw_format in enumerate(raw_formats):
            if not isinstance(raw_format, dict):  # pyright: ignore[reportUnnecessaryIsInstance]
                logger.warning(
                    "Skipping non-object format entry.",
                    extra={"format_index": index},
                )
                continue
            try:
                descriptors.append(YtdlpInfo(raw_format).to_stream_descriptor())
            except YtdlpDataError as e:
                logger.warning(
                    "Skipping malformed format entry.",
                    extra={"format_index": index},
                    exc_info=e,
                )
        return descriptors

    def video_info(self) -> VideoInfo:
        """Build the descriptive metadata and format catalog for this video.

        Raises:
            YtdlpFieldInvalidError: If a metadata field has an unexpected type.
        """
        return VideoInfo(
            video_id=self.get("id", str),
            title=self.get("title", str) or "Unknown",
            uploader=self.get("uploader", str),
            duration=_as_int(self.get("duration", _NUMBER)),
            view_count=_as_int(self.get("view_count", _NUMBER)),
            upload_date=self.get("upload_date", str),
            description=self.get("description", str),
            formats=tuple(self.stream_descriptors()),
        )
