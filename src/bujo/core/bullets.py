"""Bullet editing rules - type prefixes and indentation. Pure functions."""

from dataclasses import replace

from .journal import BulletKind, BulletPoint, NEW_BULLET_ID, clamp_indent

TYPE_PREFIXES = {
    "-": BulletKind.NOTE,
    "#": BulletKind.TASK,
    "*": BulletKind.EVENT,
}


def new_draft(kind: BulletKind = BulletKind.NOTE, indent: int = 0) -> BulletPoint:
    """An unsaved bullet being typed into a day."""
    return BulletPoint(id=NEW_BULLET_ID, kind=kind, indent=indent)


def apply_type_prefix(bullet: BulletPoint, text: str) -> BulletPoint:
    """
    Reclassify a bullet from the first character of edited text.

    '-' makes a NOTE, '#' a TASK and '*' an EVENT; the character is
    stripped from the value. Any other text just replaces the value.
    """
    kind = TYPE_PREFIXES.get(text[:1])
    if kind is None:
        return replace(bullet, value=text)
    return replace(bullet, kind=kind, value=text[1:])


def indent_bullet(bullet: BulletPoint, delta: int) -> BulletPoint:
    """Shift indentation by delta, clamped to the allowed range."""
    return replace(bullet, indent=clamp_indent(bullet.indent + delta))


def outdent_on_backspace(bullet: BulletPoint, text: str) -> BulletPoint:
    """Backspace in an empty field steps the bullet one level out."""
    if text:
        return bullet
    return indent_bullet(bullet, -1)


def toggle_checked(bullet: BulletPoint) -> BulletPoint:
    return replace(bullet, checked=not bullet.checked)
