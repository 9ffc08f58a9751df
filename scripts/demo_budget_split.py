from __future__ import annotations

from budget_sequencing.budget import PRIORITY_FLOOR_MS, Budget, derive_budget, remaining_millis


def main() -> None:
    # Deadlines are only compared, never slept on, so the shares print instantly.
    parents = [600, 290, 100, 40]
    weights = [0.5, 0.25, 0.1]

    print(f"priority floor = {PRIORITY_FLOOR_MS}ms")
    for parent_ms in parents:
        parent = Budget.root(parent_ms)
        print(f"\nparent {parent_ms:4d}ms")
        for weight in weights:
            plain = remaining_millis(derive_budget(parent, weight))
            prio = remaining_millis(derive_budget(parent, weight, priority=True))
            escalated = "*" if prio != plain else " "
            print(f"  weight={weight:<5g} share={plain:4d}ms  priority={prio:4d}ms {escalated}")


if __name__ == "__main__":
    main()
