# src/qppval/validator/dispatch.py
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from qppval.dataloader.measure_store import MeasureConfigStore
from qppval.errors import DataError, ValidationError
from qppval.model.node import Detail, Node, TemplateId, root_path, walk_with_paths
from qppval.schemas.models import ValidationSettings
from qppval.validator.registry import ValidatorRegistry, build_default_registry

logger = logging.getLogger(__name__)

REQUIRED_TEMPLATE_MISSING = "The document must contain at least one {0} node"


@dataclass(slots=True)
class ValidationResult:
    """
    Outcome of validating one document.

    Fields:
        details: Every finding, per validator in the order it was produced.
        aborted: True if an invariant violation stopped the pass; details are then empty.
        error: Text of the aborting error (None unless aborted).
        node_count: Number of nodes visited.
    """

    details: list[Detail] = field(default_factory=list)
    aborted: bool = False
    error: str | None = None
    node_count: int = 0

    @property
    def valid(self) -> bool:
        return not self.aborted and not self.details

    def to_dict(self) -> dict[str, Any]:
        return {
            "valid": self.valid,
            "aborted": self.aborted,
            "error": self.error,
            "details": [d.to_dict() for d in self.details],
        }


class DocumentValidator:
    """
    @brief
    Orchestrates validation of one node tree.

    @details
    Runs three passes over the registry's validators for the configured
    program:
      (1) per node: every validator registered for the node's template id
          validates that node;
      (2) per template id: every registered validator sees all nodes of that
          template id at once, in document order;
      (3) required templates: a required template id with no node in the
          document is reported against the root.

    Recoverable findings are returned as Details. An invariant violation
    raises ValidationError and the caller gets no partial list.
    """

    def __init__(
        self, registry: ValidatorRegistry, settings: ValidationSettings | None = None
    ) -> None:
        self.registry = registry
        self.settings = settings or ValidationSettings()

    def validate(self, root: Node) -> list[Detail]:
        """
        @brief
        Validate a fully built tree.

        @returns
            Findings of all passes; empty for a structurally valid document.

        @raises
            DataError
                Raised if `root` is not a Node.
            ValidationError
                Raised if a validator detects a violated invariant.
        """
        if not isinstance(root, Node):
            raise DataError(
                message=f"Expected a Node tree, got {type(root).__name__}",
                source="DocumentValidator.validate",
                suggested_action="Pass the root Node produced by the decoder.",
            )

        program = self.settings.program
        details: list[Detail] = []

        # (1) Group nodes by template id, keeping document order
        groups: dict[TemplateId, list[tuple[Node, str]]] = {}
        for node, path in walk_with_paths(root):
            groups.setdefault(node.template_id, []).append((node, path))

        # (2) Per-node pass
        for template_id, members in groups.items():
            for validator in self.registry.validators_for(template_id, program):
                for node, path in members:
                    found = validator.validate_single_node(node, path)
                    logger.debug("%s: %d detail(s) at %s", validator.name, len(found), path)
                    details.extend(found)

        # (3) Per-template pass
        for template_id, members in groups.items():
            nodes = [node for node, _ in members]
            paths = [path for _, path in members]
            for validator in self.registry.validators_for(template_id, program):
                details.extend(validator.validate_same_template_nodes(nodes, paths))

        # (4) Required template ids
        if self.settings.check_required_templates:
            for template_id in self.registry.required_templates(program):
                if template_id not in groups:
                    details.append(
                        Detail(REQUIRED_TEMPLATE_MISSING.format(template_id.segment), root_path(root))
                    )

        return details


def validate_document(
    root: Node,
    store: MeasureConfigStore,
    settings: ValidationSettings | None = None,
    *,
    registry: ValidatorRegistry | None = None,
) -> ValidationResult:
    """
    @brief
    High-level convenience wrapper for document validation.

    @details
    Builds the default registry unless one is given, runs every pass and
    wraps the outcome. An invariant violation is logged and turned into an
    aborted result, which is never mistaken for a valid document.

    @params
        root : Node
            Root of the decoded document.
        store : MeasureConfigStore
            Shared, read-only measure configuration.
        settings : ValidationSettings | None
            Runtime settings; defaults apply when omitted.
        registry : ValidatorRegistry | None
            Pre-built registry to reuse across documents.

    @returns
        ValidationResult with all findings or the abort reason.
    """
    settings = settings or ValidationSettings()
    if registry is None:
        registry = build_default_registry(store, settings)
    node_count = sum(1 for _ in walk_with_paths(root)) if isinstance(root, Node) else 0

    try:
        details = DocumentValidator(registry, settings).validate(root)
    except ValidationError as e:
        logger.exception("Validation aborted: %s", e)
        return ValidationResult(aborted=True, error=str(e), node_count=node_count)

    logger.info(
        "Validated %d node(s) for program %s: %d detail(s).",
        node_count,
        settings.program,
        len(details),
    )
    return ValidationResult(details=details, node_count=node_count)


__all__ = ["DocumentValidator", "ValidationResult", "validate_document", "REQUIRED_TEMPLATE_MISSING"]
