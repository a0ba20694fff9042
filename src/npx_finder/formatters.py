"""
Package Formatters

Plain-text renderings of an NPMPackage for terminals and logs.
"""

from .models import NPMPackage


def format_basic(pkg: NPMPackage) -> str:
    lines = [f"{pkg.name}@{pkg.version}"]
    if pkg.description:
        lines.append(pkg.description)
    if pkg.keywords:
        lines.append(f"Keywords: {', '.join(pkg.keywords)}")
    return "\n".join(lines)


def format_commands(pkg: NPMPackage) -> str:
    """List bin commands with the npx invocation for the package."""
    if not pkg.bin:
        return "Commands: none"

    lines = ["Commands:"]
    for command, path in pkg.bin.items():
        lines.append(f"  {command} -> {path}")
    lines.append(f"Run with: npx {pkg.name}")
    return "\n".join(lines)


def format_links(pkg: NPMPackage) -> str:
    lines = ["Links:", f"  npm: {pkg.links.npm}"]
    if pkg.links.repository:
        lines.append(f"  repository: {pkg.links.repository}")
    if pkg.links.homepage:
        lines.append(f"  homepage: {pkg.links.homepage}")
    return "\n".join(lines)


def format_dependencies(pkg: NPMPackage) -> str:
    if not pkg.dependencies:
        return "Dependencies: none"

    lines = ["Dependencies:"]
    lines.extend(f"  {name}: {version_range}" for name, version_range in sorted(pkg.dependencies.items()))
    return "\n".join(lines)


def format_all(pkg: NPMPackage) -> str:
    """All sections, separated by blank lines."""
    sections = [
        format_basic(pkg),
        format_commands(pkg),
        format_links(pkg),
        format_dependencies(pkg),
    ]
    return "\n\n".join(sections)
