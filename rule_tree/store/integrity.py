"""
Store Integrity

Checks the structural invariants of an entity store.
"""

from typing import Dict, List, Set

from rule_tree.models import ValidationResult
from rule_tree.store.entity_store import EntityStore
from exceptions import TreeIntegrityError


class StoreIntegrityChecker:
    """
    Validate that references resolve, parents exist and no cycles exist.
    """

    def validate(self, store: EntityStore) -> ValidationResult:
        """
        Validate a store.

        Args:
            store: Snapshot to check

        Returns:
            ValidationResult with errors and warnings
        """
        errors: List[str] = []
        warnings: List[str] = []

        for key, group in store.groups.items():
            if key != group.group_id:
                errors.append(f"Group stored under '{key}' has id '{group.group_id}'")
        for key, flt in store.filters.items():
            if key != flt.filter_id:
                errors.append(f"Filter stored under '{key}' has id '{flt.filter_id}'")

        shared = set(store.groups) & set(store.filters)
        for node_id in sorted(shared):
            errors.append(f"Identifier '{node_id}' is used by both a group and a filter")

        errors.extend(self._check_top_level(store))
        errors.extend(self._check_references(store))
        errors.extend(self._check_cycles(store))

        for group in store.groups.values():
            if group.parent_id is None and not group.children:
                warnings.append(f"Top-level group '{group.group_id}' has no children")

        return ValidationResult(valid=len(errors) == 0, errors=errors, warnings=warnings)

    def ensure_valid(self, store: EntityStore) -> None:
        """Raise TreeIntegrityError if the store is invalid."""
        result = self.validate(store)
        if not result.valid:
            raise TreeIntegrityError(
                f"Store failed integrity check: {result.errors[0]}",
                component="StoreIntegrityChecker",
                context={"errors": result.errors}
            )

    def _check_top_level(self, store: EntityStore) -> List[str]:
        errors = []
        if len(set(store.top_level)) != len(store.top_level):
            errors.append("Top-level order lists a group more than once")
        for group_id in store.top_level:
            group = store.groups.get(group_id)
            if group is None:
                errors.append(f"Top-level order references missing group '{group_id}'")
            elif group.parent_id is not None:
                errors.append(f"Top-level order lists nested group '{group_id}'")
        listed = set(store.top_level)
        for group in store.groups.values():
            if group.parent_id is None and group.group_id not in listed:
                errors.append(f"Top-level group '{group.group_id}' is missing from the top-level order")
        return errors

    def _check_references(self, store: EntityStore) -> List[str]:
        errors = []
        owners: Dict[str, str] = {}

        for group in store.groups.values():
            for ref in group.children:
                child = store.get(ref.type, ref.id)
                if child is None:
                    errors.append(
                        f"Group '{group.group_id}' references missing {ref.type.value} '{ref.id}'"
                    )
                    continue
                if child.parent_id != group.group_id:
                    errors.append(
                        f"{ref.type.value} '{ref.id}' is listed by '{group.group_id}' "
                        f"but declares parent '{child.parent_id}'"
                    )
                if ref.id in owners:
                    errors.append(f"{ref.type.value} '{ref.id}' is referenced more than once")
                owners[ref.id] = group.group_id

        for group in store.groups.values():
            if group.parent_id is None:
                continue
            if group.parent_id not in store.groups:
                errors.append(f"Group '{group.group_id}' has missing parent '{group.parent_id}'")
            elif group.group_id not in owners:
                errors.append(f"Group '{group.group_id}' is not listed by its parent")

        for flt in store.filters.values():
            if flt.parent_id not in store.groups:
                errors.append(f"Filter '{flt.filter_id}' has missing parent '{flt.parent_id}'")
            elif flt.filter_id not in owners:
                errors.append(f"Filter '{flt.filter_id}' is not listed by its parent")

        return errors

    def _check_cycles(self, store: EntityStore) -> List[str]:
        errors = []
        for group_id in store.groups:
            seen: Set[str] = {group_id}
            parent_id = store.groups[group_id].parent_id
            while parent_id is not None and parent_id in store.groups:
                if parent_id in seen:
                    errors.append(f"Group '{group_id}' is part of a parent cycle")
                    break
                seen.add(parent_id)
                parent_id = store.groups[parent_id].parent_id
        return errors


def check_store(store: EntityStore) -> ValidationResult:
    """Validate a store with the default checker."""
    return StoreIntegrityChecker().validate(store)

