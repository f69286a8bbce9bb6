"""
Control runner: reader -> normalizer -> comparator -> applier.

The ControlRunner performs checks and remediations for single controls
and returns every before/after snapshot as a value. It never prints;
presentation is left to the reporting layer.
"""

import logging
from typing import Callable, List, Optional, Set

from ..controls.loader import ControlLoader
from ..persistence.strategies import PersistenceStrategy, get_strategy
from ..providers.factory import ProviderFactory
from ..utils.host import is_domain_joined
from .comparator import divergence, evaluate
from .config import ToolConfig
from .errors import (
    ControlNotFound, NotFound, ParseFailure, ProviderUnavailable,
    StigHardenerError, UnsupportedOperation, WriteRejected,
)
from .models import (
    ComplianceResult, ComplianceStatus, Control, PersistenceKind,
    RemediationOutcome, WriteOutcome,
)

logger = logging.getLogger(__name__)


_STATUS_ERRORS = {
    ComplianceStatus.NOT_FOUND: NotFound,
    ComplianceStatus.PROVIDER_UNAVAILABLE: ProviderUnavailable,
    ComplianceStatus.PARSE_FAILURE: ParseFailure,
    ComplianceStatus.WRITE_REJECTED: WriteRejected,
}


def raise_for_status(result: ComplianceResult) -> None:
    """
    Raise the taxonomy error matching a non-passing result.

    A plain mismatch is not an error and does not raise.
    """
    error_class = _STATUS_ERRORS.get(result.status)
    if error_class is not None:
        raise error_class(result.message or result.status.value)


class ControlRunner:
    """
    Coordinates providers, persistence and control definitions.

    Each operation works on one control; prerequisites are remediated in
    the order they are declared, with no rollback if a later step fails.
    """

    def __init__(self, config: Optional[ToolConfig] = None,
                 providers: Optional[ProviderFactory] = None,
                 loader: Optional[ControlLoader] = None,
                 persistence: Optional[Callable[[PersistenceKind], PersistenceStrategy]] = None,
                 domain_lookup: Optional[Callable[[], Optional[bool]]] = None):
        """
        Initialize the runner.

        Args:
            config: Tool configuration
            providers: Provider factory (a real one if None)
            loader: Control loader (bundled definitions if None)
            persistence: Callable returning the strategy for a persistence kind
            domain_lookup: Callable reporting whether the host is domain joined
        """
        self.config = config or ToolConfig()
        self.providers = providers or ProviderFactory(config=self.config)
        self.loader = loader or ControlLoader(self.config.controls_dir)
        self._persistence = persistence or (
            lambda kind: get_strategy(kind, runner=self.providers.runner, config=self.config)
        )
        self._domain_lookup = domain_lookup or (lambda: is_domain_joined(self.providers.runner))

    def check(self, control: Control) -> ComplianceResult:
        """
        Read a control's setting and evaluate its rule.

        Args:
            control: Control to check

        Returns:
            ComplianceResult: Result of a fresh read
        """
        provider = self.providers.get_provider(control.provider)
        observed = provider.read(control.rule.identity)
        result = evaluate(observed, control.rule)

        logger.info("%s: %s", control.id, result.status.value)
        return result

    def check_id(self, control_id: str) -> ComplianceResult:
        return self.check(self.loader.get_control(control_id))

    def remediate(self, control: Control, persist: bool = True, dry_run: bool = False) -> RemediationOutcome:
        """
        Converge a control toward its desired state.

        Reads the current state; if it already passes nothing is written.
        Otherwise prerequisites are remediated, exactly one write is issued
        and the setting is read again to confirm. Persistence is only
        registered after a confirmed pass.

        Args:
            control: Control to remediate
            persist: Register the control's persistence strategy after success
            dry_run: Report what would be written without writing

        Returns:
            RemediationOutcome: Before, prerequisite, write and after snapshots

        Raises:
            UnsupportedOperation: If the control has no remediation
        """
        return self._remediate(control, persist=persist, dry_run=dry_run, visiting=set())

    def remediate_id(self, control_id: str, persist: bool = True, dry_run: bool = False) -> RemediationOutcome:
        return self.remediate(self.loader.get_control(control_id), persist=persist, dry_run=dry_run)

    def _remediate(self, control: Control, persist: bool, dry_run: bool,
                   visiting: Set[str]) -> RemediationOutcome:
        if control.remediation is None:
            raise UnsupportedOperation(f"{control.id} has no remediation (read-only check)")

        note = divergence(control.rule, control.remediation)
        if note:
            logger.warning("%s: %s", control.id, note)

        visiting = visiting | {control.id}
        before = self.check(control)
        outcome = RemediationOutcome(
            control_id=control.id,
            control_title=control.title,
            severity=control.severity,
            before=before,
            dry_run=dry_run,
        )

        if before.passed:
            outcome.message = "Already compliant, no changes made"
            return outcome

        provider = self.providers.get_provider(control.provider)
        identity = control.rule.identity

        if dry_run:
            command = provider.write_command(identity, control.remediation)
            outcome.message = f"Would run: {' '.join(command)}"
            return outcome

        outcome.prerequisites = self._remediate_prerequisites(control, persist, visiting)
        failed = [p.control_id for p in outcome.prerequisites if not p.passed]
        if failed:
            logger.warning("%s: prerequisites not compliant: %s", control.id, ", ".join(failed))

        result = provider.write(identity, control.remediation)

        # Mandatory confirmation: higher-precedence policy can mask the write
        after = self.check(control)
        if result.success and not after.passed and not after.indeterminate:
            after = self._rejected(control, after)
        elif not result.success and not after.passed and not after.indeterminate:
            after = after.model_copy(update={
                'message': f"Write failed (exit {result.exit_code}): "
                           f"{(result.stderr or result.stdout).strip()}"
            })

        outcome.write = WriteOutcome(identity=identity, result=result, before=before, after=after)

        if after.passed and persist and control.persistence != PersistenceKind.NONE:
            strategy = self._persistence(control.persistence)
            outcome.persistence = strategy.register(
                control.id, provider.write_command(identity, control.remediation)
            )

        outcome.message = "Remediated" if after.passed else "Remediation did not take effect"
        return outcome

    def _remediate_prerequisites(self, control: Control, persist: bool,
                                  visiting: Set[str]) -> List[RemediationOutcome]:
        outcomes = []
        for prerequisite_id in control.prerequisites:
            if prerequisite_id in visiting:
                raise StigHardenerError(f"Prerequisite cycle at {prerequisite_id} (from {control.id})")
            try:
                prerequisite = self.loader.get_control(prerequisite_id)
            except ControlNotFound:
                logger.error("%s: unknown prerequisite %s", control.id, prerequisite_id)
                raise
            outcomes.append(self._remediate(prerequisite, persist=persist, dry_run=False, visiting=visiting))
        return outcomes

    def _rejected(self, control: Control, after: ComplianceResult) -> ComplianceResult:
        """Mark a write that reported success but did not take effect."""
        message = f"Write reported success but {after.message}"

        domain_joined = self._domain_lookup()
        if domain_joined:
            message += "; host is domain joined, a domain Group Policy may override this setting"
        if control.prerequisites:
            message += f"; confirm prerequisites {', '.join(control.prerequisites)}"

        logger.error("%s: %s", control.id, message)
        return after.model_copy(update={'status': ComplianceStatus.WRITE_REJECTED, 'message': message})
