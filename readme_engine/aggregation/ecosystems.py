"""
Language Ecosystems
===================
Static language ↔ ecosystem association table used by the aggregator's
data-consistency checks.

An ecosystem is identified by its package-manager / build-tool tokens.
A detected primary language is consistent with a package manager or a
command when both map to the same ecosystem.

Deterministic lookups only: no heuristics beyond first-token matching.
"""
from typing import Optional


# ---------------------------------------------------------------------------
# Language → ecosystem
# ---------------------------------------------------------------------------
LANGUAGE_ECOSYSTEMS: dict[str, str] = {
    "javascript": "node",
    "typescript": "node",
    "python":     "python",
    "java":       "jvm",
    "kotlin":     "jvm",
    "scala":      "jvm",
    "rust":       "rust",
    "go":         "go",
}

# ---------------------------------------------------------------------------
# Package manager / build tool → ecosystem
# ---------------------------------------------------------------------------
# Also the first token of an executable command (e.g. "npm install").
TOOL_ECOSYSTEMS: dict[str, str] = {
    "npm":     "node",
    "npx":     "node",
    "yarn":    "node",
    "pnpm":    "node",
    "node":    "node",
    "pip":     "python",
    "pip3":    "python",
    "poetry":  "python",
    "pipenv":  "python",
    "python":  "python",
    "python3": "python",
    "pytest":  "python",
    "maven":   "jvm",
    "mvn":     "jvm",
    "gradle":  "jvm",
    "gradlew": "jvm",
    "./gradlew": "jvm",
    "cargo":   "rust",
    "go":      "go",
    "go modules": "go",
}

# Package-file names → ecosystem, for DependencyInfo.package_files
PACKAGE_FILE_ECOSYSTEMS: dict[str, str] = {
    "package.json":     "node",
    "requirements.txt": "python",
    "pyproject.toml":   "python",
    "setup.py":         "python",
    "Pipfile":          "python",
    "pom.xml":          "jvm",
    "build.gradle":     "jvm",
    "Cargo.toml":       "rust",
    "go.mod":           "go",
}

# Launchers that never imply an ecosystem on their own
_NEUTRAL_PREFIXES = {"sudo", "env", "make", "docker", "bash", "sh", "cd", "echo"}


def language_ecosystem(language: Optional[str]) -> Optional[str]:
    """Ecosystem of a language name, or None when the language is unknown."""
    if not language:
        return None
    return LANGUAGE_ECOSYSTEMS.get(language.strip().lower())


def tool_ecosystem(tool: Optional[str]) -> Optional[str]:
    """Ecosystem of a package manager / build tool name."""
    if not tool:
        return None
    return TOOL_ECOSYSTEMS.get(tool.strip().lower())


def package_file_ecosystem(file_name: Optional[str]) -> Optional[str]:
    if not file_name:
        return None
    return PACKAGE_FILE_ECOSYSTEMS.get(file_name.strip().rsplit("/", 1)[-1])


def command_ecosystem(command: Optional[str]) -> Optional[str]:
    """
    Ecosystem implied by an executable command line.

    Parameters
    ----------
    command : str | None
        Raw command text, e.g. "npm run build" or "sudo pip install -r requirements.txt".

    Returns
    -------
    str | None
        Ecosystem of the first non-launcher token, or None if it is not a
        known tool.
    """
    if not command:
        return None
    for token in command.strip().split():
        lowered = token.lower()
        if lowered in _NEUTRAL_PREFIXES or "=" in lowered:
            continue
        return TOOL_ECOSYSTEMS.get(lowered)
    return None


def is_consistent(language: Optional[str], ecosystem: Optional[str]) -> bool:
    """
    True unless both sides are known and belong to different ecosystems.

    Unknown languages or tools never produce a mismatch.
    """
    expected = language_ecosystem(language)
    if expected is None or ecosystem is None:
        return True
    return expected == ecosystem
