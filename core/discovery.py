"""
Discovery of system result directories.

Layout convention under the results root:

    <profile>/<...>/<system dir containing *.fio.json>

The first path component is the profile. System names inside a profile are
the relative paths with the components shared by every system of that
profile (leading and trailing) elided.
"""

import os
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

MAX_DEPTH = 3
WORKLOAD_SUFFIX = ".fio.json"
SKIPPED_DIRS = {"src", "target"}

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]")


def sanitize_name(name: str) -> str:
    """Replace characters that are unsafe in file names with '_'."""
    return _UNSAFE_CHARS.sub("_", name)


@dataclass
class SystemProfile:
    """Systems of one profile: display name -> absolute directory."""
    system_paths: Dict[str, str] = field(default_factory=dict)
    profile_path: str = ""

    @property
    def system_names(self) -> List[str]:
        return sorted(self.system_paths)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "system_paths": {name: self.system_paths[name] for name in self.system_names},
            "profile_path": self.profile_path,
        }


@dataclass
class AnalysisManifest:
    root: str
    profiles: Dict[str, SystemProfile] = field(default_factory=dict)

    @property
    def profile_names(self) -> List[str]:
        return sorted(self.profiles)

    @property
    def total_systems(self) -> int:
        return sum(len(p.system_paths) for p in self.profiles.values())

    def systems_for_profile(self, profile: str) -> Dict[str, str]:
        entry = self.profiles.get(profile)
        return dict(entry.system_paths) if entry else {}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "root": self.root,
            "total_systems": self.total_systems,
            "profiles": {name: self.profiles[name].to_dict() for name in self.profile_names},
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AnalysisManifest":
        profiles = {
            name: SystemProfile(
                system_paths=dict(entry.get("system_paths", {})),
                profile_path=entry.get("profile_path", ""),
            )
            for name, entry in data.get("profiles", {}).items()
        }
        return cls(root=data.get("root", ""), profiles=profiles)


def _skip_dir(name: str) -> bool:
    return name.startswith(".") or name.startswith("report") or name in SKIPPED_DIRS


def find_workload_files(system_dir: str) -> List[str]:
    """All *.fio.json files directly in a system directory, sorted by name."""
    try:
        names = os.listdir(system_dir)
    except OSError:
        return []
    return [
        os.path.join(system_dir, name)
        for name in sorted(names)
        if name.endswith(WORKLOAD_SUFFIX) and os.path.isfile(os.path.join(system_dir, name))
    ]


def _common_leading(components: List[List[str]]) -> int:
    count = 0
    for i in range(min(len(c) for c in components)):
        if all(c[i] == components[0][i] for c in components):
            count += 1
        else:
            break
    return count


def _common_trailing(components: List[List[str]]) -> int:
    count = 0
    for i in range(1, min(len(c) for c in components) + 1):
        if all(c[-i] == components[0][-i] for c in components):
            count += 1
        else:
            break
    return count


def derive_system_names(relative_paths: List[str]) -> Dict[str, str]:
    """Map elided system names to their relative paths."""
    if len(relative_paths) <= 1:
        return {p: p for p in relative_paths}

    components = [p.split("/") for p in relative_paths]
    leading = _common_leading(components)
    trailing = _common_trailing(components)

    names = {}
    for path, parts in zip(relative_paths, components):
        start, end = leading, len(parts) - trailing
        if start >= end:
            start, end = 0, len(parts)
        name = "/".join(parts[start:end]) or parts[-1]
        names[name] = path
    return names


def _common_prefix(relative_paths: List[str]) -> str:
    components = [p.split("/") for p in relative_paths]
    return "/".join(components[0][:_common_leading(components)])


def _system_directories(root: str) -> List[str]:
    """Relative paths of directories that directly contain workload files."""
    found = []
    for dirpath, dirnames, filenames in os.walk(root):
        rel = os.path.relpath(dirpath, root)
        depth = 0 if rel == "." else rel.count(os.sep) + 1
        dirnames[:] = sorted(d for d in dirnames if not _skip_dir(d))
        if depth >= MAX_DEPTH:
            dirnames[:] = []
        if depth == 0:
            continue
        if any(f.endswith(WORKLOAD_SUFFIX) for f in filenames):
            found.append(rel.replace(os.sep, "/"))
    return found


def enumerate_results(root: Optional[str] = None) -> AnalysisManifest:
    """Walk the results root and group system directories into profiles."""
    root = os.path.abspath(root or os.getcwd())
    grouped: Dict[str, List[str]] = {}
    for rel in _system_directories(root):
        profile = sanitize_name(rel.split("/")[0])
        grouped.setdefault(profile, []).append(rel)

    profiles = {}
    for profile in sorted(grouped):
        rel_paths = grouped[profile]
        names = derive_system_names(rel_paths)
        profiles[profile] = SystemProfile(
            system_paths={name: os.path.join(root, *rel.split("/")) for name, rel in names.items()},
            profile_path=os.path.join(root, *_common_prefix(rel_paths).split("/")),
        )
    return AnalysisManifest(root=root, profiles=profiles)
