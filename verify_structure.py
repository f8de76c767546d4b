"""
Project Structure Verifier

Checks that the repository has everything needed before deploying:
package layout, packaging metadata, tests and environment docs.

Usage:
    python verify_structure.py [project_root]
"""

import argparse
import re
import sys
import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

REQUIRED_DEPENDENCIES = ("fastapi", "uvicorn", "httpx", "pydantic-settings", "structlog")


@dataclass
class CheckResult:
    """Outcome of one structure check."""
    name: str
    passed: bool
    details: str = ""


def _dependency_names(requirements: List[str]) -> set:
    names = set()
    for requirement in requirements:
        match = re.match(r"\s*([A-Za-z0-9_.\-]+)", requirement)
        if match:
            names.add(match.group(1).lower().replace("_", "-"))
    return names


def run_checks(root: Path) -> List[CheckResult]:
    """
    Run every structure check against a project root.

    Args:
        root: Directory containing pyproject.toml

    Returns:
        One CheckResult per check, in a stable order
    """
    results: List[CheckResult] = []

    def check(name: str, condition: bool, details: str) -> None:
        results.append(CheckResult(name=name, passed=bool(condition), details=details))

    check(
        "gitbot/ package exists",
        (root / "gitbot" / "__init__.py").is_file(),
        "Create the gitbot package with an __init__.py"
    )
    check(
        "gitbot/webhook/handler.py exists",
        (root / "gitbot" / "webhook" / "handler.py").is_file(),
        "Move the webhook endpoint to gitbot/webhook/handler.py"
    )

    pyproject_path = root / "pyproject.toml"
    check(
        "pyproject.toml exists",
        pyproject_path.is_file(),
        "Add a pyproject.toml with the project metadata"
    )
    check(
        ".env.example exists",
        (root / ".env.example").is_file(),
        "Create .env.example to document required environment variables"
    )

    if pyproject_path.is_file():
        try:
            pyproject = tomllib.loads(pyproject_path.read_text(encoding="utf-8"))
        except tomllib.TOMLDecodeError as e:
            check("pyproject.toml is valid TOML", False, str(e))
            pyproject = None

        if pyproject is not None:
            project = pyproject.get("project", {})
            declared = _dependency_names(project.get("dependencies", []))
            missing = [dep for dep in REQUIRED_DEPENDENCIES if dep not in declared]
            check(
                "Runtime dependencies declared",
                not missing,
                f"Add to [project].dependencies: {', '.join(missing)}"
            )

            test_deps = _dependency_names(
                project.get("optional-dependencies", {}).get("test", [])
            )
            check(
                "Test dependencies declared",
                "pytest" in test_deps,
                "Add pytest to [project.optional-dependencies].test"
            )
            check(
                "Pytest configured",
                "pytest" in pyproject.get("tool", {}),
                "Add a [tool.pytest.ini_options] section"
            )

    check(
        "Test file exists",
        (root / "tests" / "test_webhook.py").is_file(),
        "Create tests/test_webhook.py"
    )
    check(
        "README.md exists",
        (root / "README.md").is_file(),
        "Create README.md with setup instructions"
    )

    gitignore_path = root / ".gitignore"
    if gitignore_path.is_file():
        gitignore = gitignore_path.read_text(encoding="utf-8")
        check(
            ".gitignore includes virtualenvs",
            "venv" in gitignore,
            "Add .venv/ to .gitignore"
        )
        check(
            ".gitignore includes .env",
            ".env" in gitignore,
            "Add .env to .gitignore to prevent committing secrets"
        )
    else:
        check(".gitignore exists", False, "Create a .gitignore")

    return results


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Verify the gitbot project structure")
    parser.add_argument("root", nargs="?", default=".", help="Project root (default: current directory)")
    args = parser.parse_args(argv)

    print("Verifying project structure for deployment...\n")
    results = run_checks(Path(args.root))

    for result in results:
        print(f"{'PASS' if result.passed else 'FAIL'}  {result.name}")
        if not result.passed and result.details:
            print(f"      {result.details}")

    passed = sum(1 for result in results if result.passed)
    print("\n" + "=" * 50)
    print(f"Verification Results: {passed}/{len(results)} checks passed")

    if passed == len(results):
        print("Project structure is ready for deployment!")
        print("\nNext steps:")
        print("1. Run tests: pytest")
        print("2. Set GITHUB_WEBHOOK_SECRET, DISCORD_TOKEN and CHANNEL_ID")
        print("3. Start the server: python run.py")
        print("4. Configure the GitHub webhook")
        return 0

    print("Please fix the issues above before deploying")
    return 1


if __name__ == "__main__":
    sys.exit(main())
