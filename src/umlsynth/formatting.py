"""UML text for node compartments: member lines and stereotypes."""

from .models import (
    ContractError,
    EntityDescriptor,
    EntityKind,
    MemberDescriptor,
    Parameter,
    Visibility,
)

_VISIBILITY_SYMBOL = {
    Visibility.PUBLIC: "+",
    Visibility.PRIVATE: "-",
    Visibility.PROTECTED: "#",
}

# Modifiers shown in braces after the member, in this order
_SHOWN_MODIFIERS = ("readonly", "static", "abstract")


def format_parameter(param: Parameter) -> str:
    return f"{param.name}{'?' if param.optional else ''}: {param.type_text}"


def format_member(member: MemberDescriptor, in_interface: bool = False) -> str:
    """
    "+ name: string {readonly}"
    "- save(force?: boolean): Promise<void> {static}"

    Interface members carry no visibility symbol.
    """
    prefix = "" if in_interface else f"{_VISIBILITY_SYMBOL[member.visibility]} "
    if member.is_method:
        params = ", ".join(format_parameter(p) for p in member.parameters)
        text = f"{prefix}{member.name}({params}): {member.type_text}"
    else:
        optional = "?" if "optional" in member.modifiers else ""
        text = f"{prefix}{member.name}{optional}: {member.type_text}"

    shown = [m for m in _SHOWN_MODIFIERS if m in member.modifiers]
    if in_interface:
        shown = [m for m in shown if m == "readonly"]
    if shown:
        text += " {" + ", ".join(shown) + "}"
    return text


def member_lines(entity: EntityDescriptor) -> tuple[str, ...]:
    """Properties first, then methods, each group in declaration order."""
    in_interface = entity.kind is EntityKind.INTERFACE
    props = [format_member(m, in_interface) for m in entity.members if not m.is_method]
    methods = [format_member(m, in_interface) for m in entity.members if m.is_method]
    return tuple(props + methods)


def stereotype(entity: EntityDescriptor) -> str | None:
    if entity.kind is EntityKind.INTERFACE:
        return "<<interface>>"
    if entity.kind is EntityKind.CLASS:
        return "<<abstract>>" if entity.is_abstract else None
    raise ContractError(f"unknown entity kind: {entity.kind!r}")


def display_name(entity: EntityDescriptor) -> str:
    if entity.type_params:
        return f"{entity.name}<{', '.join(entity.type_params)}>"
    return entity.name
