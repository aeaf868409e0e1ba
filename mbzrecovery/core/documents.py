# SPDX-License-Identifier: GPL-3.0-or-later
"""
Metadata document decoding for mbzRecovery.

Moodle backups describe their content in small XML documents. Instead of
walking each document by hand, the expected shape is declared as a dataclass
and every field says where its value comes from:

    @dataclass
    class FolderDocument:
        name: str = element("folder/name")

    folder = decode_document(stream, FolderDocument)

Field declarations:
    attribute(name)        attribute of the element being decoded
    element(path)          text of the first element found at path
    elements(path, shape)  every element found at path, decoded as shape
    ignored()              never read from the document

A field with no declaration is read from the child element of the same name.
Missing attributes and elements decode to "" (or [] for sequences).

Parsing goes through defusedxml because backup files come from outside and
may carry entity expansion payloads.

Copyright (C) 2024 mbzRecovery Contributors
Licensed under GPL-3.0-or-later
"""

from dataclasses import field, fields, is_dataclass
from typing import Any, BinaryIO, List, Type, TypeVar, Union
from xml.etree.ElementTree import Element, ParseError

from defusedxml import DefusedXmlException
from defusedxml import ElementTree as DefusedET

from .errors import DocumentError

T = TypeVar("T")

_XML = "xml"

_ATTRIBUTE = "attribute"
_ELEMENT = "element"
_ELEMENTS = "elements"


def attribute(name: str) -> Any:
    """Declare a field read from an attribute of the current element."""
    return field(default="", metadata={_XML: (_ATTRIBUTE, name)})


def element(path: str) -> Any:
    """Declare a field read from the text of a (possibly nested) child element."""
    return field(default="", metadata={_XML: (_ELEMENT, path)})


def elements(path: str, shape: type) -> Any:
    """Declare a list field holding every element found at path."""
    return field(default_factory=list, metadata={_XML: (_ELEMENTS, path, shape)})


def ignored(default: Any = "") -> Any:
    """Declare a field that exists in memory only."""
    return field(default=default, metadata={_XML: None})


def _read_all(source: Union[bytes, BinaryIO]) -> bytes:
    if isinstance(source, (bytes, bytearray)):
        return bytes(source)
    try:
        return source.read()
    except OSError as e:
        raise DocumentError(f"could not read document: {e}") from e


def _parse(source: Union[bytes, BinaryIO]) -> Element:
    data = _read_all(source)
    try:
        return DefusedET.fromstring(data)
    except (ParseError, DefusedXmlException) as e:
        raise DocumentError(f"malformed document: {e}") from e


def _check_shape(shape: type) -> None:
    if not (isinstance(shape, type) and is_dataclass(shape)):
        raise TypeError(f"{shape!r} is not a dataclass")


def _decode_element(node: Element, shape: Type[T]) -> T:
    values = {}
    for f in fields(shape):
        if not f.init:
            continue
        declaration = f.metadata.get(_XML, (_ELEMENT, f.name))
        if declaration is None:
            continue

        kind = declaration[0]
        if kind == _ATTRIBUTE:
            values[f.name] = node.get(declaration[1], "")
        elif kind == _ELEMENT:
            child = node.find(declaration[1])
            values[f.name] = (child.text or "") if child is not None else ""
        elif kind == _ELEMENTS:
            path, child_shape = declaration[1], declaration[2]
            values[f.name] = [
                _decode_element(child, child_shape) for child in node.findall(path)
            ]
        else:
            raise TypeError(f"Unknown field declaration {kind!r} on {shape.__name__}")

    return shape(**values)


def decode_document(source: Union[bytes, BinaryIO], shape: Type[T]) -> T:
    """
    Decode a whole XML document into an instance of shape.

    The root element is the element being decoded, so paths are relative
    to it.

    Raises:
        DocumentError: if the input cannot be read or is not well-formed XML
    """
    _check_shape(shape)
    return _decode_element(_parse(source), shape)


def decode_sequence(
    source: Union[bytes, BinaryIO], shape: Type[T], path: str
) -> List[T]:
    """
    Decode every element found at path below the document root.

    Raises:
        DocumentError: if the input cannot be read or is not well-formed XML
    """
    _check_shape(shape)
    root = _parse(source)
    return [_decode_element(node, shape) for node in root.findall(path)]
