"""Push a preset's captured state back into the host."""
import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from ..core.config import ConfigStore
from ..core.plugins import PluginRegistry
from ..log.log import preset_extra
from ..settings.lib import IgnoreRules
from ..status import status
from .model import Preset


class ReentrancyGuard:
    """Flag held while the engine itself is changing configuration.

    Change notifications that arrive while :attr:`active` is True were caused by an
    apply and must not be treated as drift.
    """

    def __init__(self) -> None:
        self._depth = 0

    @property
    def active(self) -> bool:
        return self._depth > 0

    @contextmanager
    def hold(self):
        self._depth += 1
        try:
            yield self
        finally:
            self._depth -= 1


@dataclass
class PluginResult:
    """Outcome of toggling one plugin."""
    name: str
    enabled: bool
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class ApplyReport:
    """Aggregate result of applying a preset.

    Attributes:
        results: One entry per plugin whose state was set, in registry order.
        ignored: Live plugins the preset never captured; left untouched.
        missing: Plugins the preset references that are not installed.
        settings_written: Number of setting values written.
        settings_failed: ``(group, key, error)`` for every setting that could not be written.
    """
    preset_id: int
    results: List[PluginResult] = field(default_factory=list)
    ignored: List[str] = field(default_factory=list)
    missing: List[str] = field(default_factory=list)
    settings_written: int = 0
    settings_failed: List[Tuple[str, str, Exception]] = field(default_factory=list)

    @property
    def failures(self) -> List[PluginResult]:
        return [r for r in self.results if not r.ok]

    @property
    def ok(self) -> bool:
        return not self.failures and not self.settings_failed


class ApplyEngine:
    """Write a preset's settings and enablement through the host adapters.

    Every per-setting and per-plugin failure is isolated: the batch always runs to the
    end and the failures are collected in the returned :class:`ApplyReport`.
    """

    def __init__(self, config_store: ConfigStore, plugin_registry: PluginRegistry,
                 rules: Optional[IgnoreRules] = None, guard: Optional[ReentrancyGuard] = None) -> None:
        self.config_store = config_store
        self.plugin_registry = plugin_registry
        self.rules = rules or IgnoreRules()
        self.guard = guard or ReentrancyGuard()

    def apply(self, preset: Preset) -> ApplyReport:
        report = ApplyReport(preset_id=preset.id)
        with self.guard.hold():
            self._apply_settings(preset, report)
            self._apply_enabled(preset, report)

        extra = preset_extra(preset.name)
        for r in report.failures:
            logging.warning(f'Plugin "{r.name}" failed while applying {preset.name!r}: {r.error}', extra=extra)
        for group, key, ex in report.settings_failed:
            logging.warning(f'Setting {group}.{key} not applied from {preset.name!r}: {ex}', extra=extra)
        if report.missing:
            logging.info(f'{status.get_message(status.Status.MissingPlugins)} {", ".join(report.missing)}',
                         extra=extra)
        logging.debug(f'Applied preset {preset.name!r}: {len(report.results)} plugins, '
                      f'{report.settings_written} settings')
        return report

    def _apply_settings(self, preset: Preset, report: ApplyReport) -> None:
        for group, values in preset.plugin_settings.items():
            if self.rules.group_ignored(group):
                continue
            for key, value in values.items():
                if value is None or self.rules.key_ignored(key):
                    continue
                try:
                    self.config_store.set_value(group, key, value)
                    report.settings_written += 1
                except Exception as ex:
                    report.settings_failed.append((group, key, ex))

    def _apply_enabled(self, preset: Preset, report: ApplyReport) -> None:
        live = []
        for plugin in self.plugin_registry.list_plugins():
            live.append(plugin.name)
            if self.rules.plugin_ignored(plugin.name):
                continue

            enabled = preset.enabled_plugins.get(plugin.name)
            if enabled is None:
                # Installed after the preset was captured
                report.ignored.append(plugin.name)
                continue

            result = PluginResult(name=plugin.name, enabled=enabled)
            try:
                self.plugin_registry.set_enabled(plugin.name, enabled)
                if enabled:
                    self.plugin_registry.start(plugin.name)
                else:
                    self.plugin_registry.stop(plugin.name)
            except Exception as ex:
                result.error = ex
            report.results.append(result)

        report.missing = [
            name for name in preset.enabled_plugins
            if name not in live and not self.rules.plugin_ignored(name)
        ]
