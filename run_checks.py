import argparse
import subprocess
import sys

# Using 'uv run' to ensure we use the project's environment and dependencies
CHECKS = {
    "ruff": (["uv", "run", "ruff", "check", "src", "tests", "examples"], "ruff_output.txt"),
    "mypy": (["uv", "run", "mypy", "src/chainveil"], "mypy_output.txt"),
    "pytest": (["uv", "run", "pytest", "-v"], "test_output.txt"),
}


def run_command(command, output_file):
    print(f"Running: {' '.join(command)}")
    try:
        with open(output_file, "w") as f:
            result = subprocess.run(command, stdout=f, stderr=subprocess.STDOUT, text=True)
    except OSError as e:
        print(f"Error running {' '.join(command)}: {e}")
        return 1
    print(f"Finished: {' '.join(command)} (Exit Code: {result.returncode})")
    return result.returncode


def main():
    parser = argparse.ArgumentParser(description="Run lint, type and test checks; output goes to *_output.txt.")
    parser.add_argument("--only", choices=sorted(CHECKS), action="append", help="Run only the named check(s).")
    args = parser.parse_args()

    failed = [name for name in (args.only or list(CHECKS)) if run_command(*CHECKS[name]) != 0]

    print("\nChecks completed.")
    if failed:
        print(f"Failed: {', '.join(failed)}. Please review the output files.")
        sys.exit(1)
    print("All checks passed!")
    sys.exit(0)


if __name__ == "__main__":
    main()
