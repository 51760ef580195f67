"""The fixed set of repositories that make up a DMD release.

The table below is the whole build topology: `BUILD_ORDER` is walked in
sequence by the build and clean stages. Every built component compiles
against the freshly built dmd, which is why dmd comes first.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from pathlib import Path

from cdr.core.config import BitWidth

from .profile import TargetProfile

__all__ = [
    "BUILD_ORDER",
    "Component",
    "RECIPES",
    "Recipe",
    "recipe_for",
]


class Component(StrEnum):
    """A source repository; the value is its repo and clone directory name."""

    DMD = "dmd"
    DRUNTIME = "druntime"
    PHOBOS = "phobos"
    TOOLS = "tools"
    DLANG_ORG = "dlang.org"
    INSTALLER = "installer"

    def repo_url(self, prefix: str) -> str:
        return f"{prefix}{self.value}.git"


@dataclass(frozen=True, slots=True)
class Recipe:
    """How one component is built and cleaned.

    Attributes:
        component: The repository.
        label: Name used in progress messages.
        build_subdir: Directory (relative to the clone) make runs in.
        invocations: One entry per make call; each lists targets/variables.
        doc_invocations: Extra make calls only run when docs are enabled.
        clean_vars: Extra variables for `make clean`.
        residue: Profile suffix attributes ("obj", "lib") whose files are
            deleted after building.
        keep_residue: Name prefixes exempt from residue deletion.
        host_tool: Produces executables; built in 64-bit passes only when
            the profile builds 64-bit tools.
        msvc: 64-bit builds need the MSVC variables on DMC profiles.
        docs: Documentation site; built once, not per width.
        built: False for repositories that are only packaged.
        depends_on: Components that must be built first.
    """

    component: Component
    label: str
    build_subdir: str = ""
    invocations: tuple[tuple[str, ...], ...] = ((),)
    doc_invocations: tuple[tuple[str, ...], ...] = ()
    clean_vars: tuple[str, ...] = ()
    residue: tuple[str, ...] = ("obj",)
    keep_residue: tuple[str, ...] = ()
    host_tool: bool = False
    msvc: bool = False
    docs: bool = False
    built: bool = True
    depends_on: tuple[Component, ...] = (Component.DMD,)

    def build_dir(self, clone_dir: Path) -> Path:
        base = clone_dir / self.component.value
        return base / self.build_subdir if self.build_subdir else base

    def residue_patterns(self, profile: TargetProfile) -> tuple[str, ...]:
        return tuple(f"*{getattr(profile, kind)}" for kind in self.residue)

    def removable(self, rel_path: str) -> bool:
        """Residue filter: False for files that must survive cleanup."""
        name = rel_path.rsplit("/", 1)[-1]
        return not name.startswith(self.keep_residue) if self.keep_residue else True

    def applies_to(self, bits: BitWidth, profile: TargetProfile) -> bool:
        if not self.built:
            return False
        if self.host_tool:
            return profile.builds_host_tools(bits)
        return True


RECIPES: tuple[Recipe, ...] = (
    Recipe(
        component=Component.DMD,
        label="DMD",
        build_subdir="src",
        invocations=(("dmd",),),
        residue=("obj", "lib"),
        host_tool=True,
        depends_on=(),
    ),
    Recipe(
        component=Component.DRUNTIME,
        label="Druntime",
        keep_residue=("gcstub", "minit"),
        msvc=True,
    ),
    Recipe(
        component=Component.PHOBOS,
        label="Phobos",
        clean_vars=("DOCSRC=../dlang.org", "DOC=doc"),
        msvc=True,
        depends_on=(Component.DMD, Component.DRUNTIME),
    ),
    Recipe(
        component=Component.DLANG_ORG,
        label="dlang.org",
        residue=(),
        docs=True,
        depends_on=(Component.DMD, Component.DRUNTIME, Component.PHOBOS),
    ),
    Recipe(
        component=Component.TOOLS,
        label="Tools",
        invocations=(("rdmd",), ("ddemangle",), ("dustmite",)),
        doc_invocations=(("dman",),),
        host_tool=True,
        depends_on=(Component.DMD, Component.PHOBOS),
    ),
    Recipe(
        component=Component.INSTALLER,
        label="Installer",
        residue=(),
        built=False,
        depends_on=(),
    ),
)

BUILD_ORDER: tuple[Recipe, ...] = tuple(r for r in RECIPES if r.built)


def recipe_for(component: Component) -> Recipe:
    for recipe in RECIPES:
        if recipe.component == component:
            return recipe
    raise KeyError(component)
