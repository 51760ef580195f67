"""DMD release pipeline.

- profile, components, layout: what is built and where it goes
- make, archive, preflight: adapters around external tools and formats
- builder, packager, manifest: the build and package stages
- pipeline: stage planning and orchestration
"""

from .archive import build_archive, extract_archive
from .builder import Builder, BuildPass, build_plan, compiler_config_text
from .components import BUILD_ORDER, RECIPES, Component, Recipe, recipe_for
from .layout import WorkspacePaths, default_work_dir, release_bit_suffix
from .make import BuildTool, Make, MakeInvocation
from .manifest import EXPECTED_EXTRAS, ManifestEntry, find_missing, verify_manifest
from .packager import Packager, copy_versioned, is_doc_file
from .pipeline import ReleasePipeline, Stage, plan_stages
from .preflight import MsvcToolchain, resolve_msvc, run_preflight
from .profile import PROFILES, TargetProfile, detect_profile, profile_for

__all__ = [
    # archive
    "build_archive",
    "extract_archive",
    # builder
    "BuildPass",
    "Builder",
    "build_plan",
    "compiler_config_text",
    # components
    "BUILD_ORDER",
    "Component",
    "RECIPES",
    "Recipe",
    "recipe_for",
    # layout
    "WorkspacePaths",
    "default_work_dir",
    "release_bit_suffix",
    # make
    "BuildTool",
    "Make",
    "MakeInvocation",
    # manifest
    "EXPECTED_EXTRAS",
    "ManifestEntry",
    "find_missing",
    "verify_manifest",
    # packager
    "Packager",
    "copy_versioned",
    "is_doc_file",
    # pipeline
    "ReleasePipeline",
    "Stage",
    "plan_stages",
    # preflight
    "MsvcToolchain",
    "resolve_msvc",
    "run_preflight",
    # profile
    "PROFILES",
    "TargetProfile",
    "detect_profile",
    "profile_for",
]
