"""
System Reporter
Renders analysis results as plain-text reports for the console and log files.
"""

import datetime
import logging
from pathlib import Path
from typing import List, Optional

from .models import AnalysisResult, AnalysisStatus, MotivePattern, Pattern, Recommendation

logger = logging.getLogger(__name__)

TOP_PATTERNS_IN_REPORT = 3


def _fmt(value: Optional[float]) -> str:
    return "n/a" if value is None else f"{value:,.4f}"


class SystemReporter:
    """
    Formats `AnalysisResult` records into readable reports.
    """

    def __init__(self, reports_dir: Optional[str] = None):
        self.reports_dir = Path(reports_dir) if reports_dir else None

    def format_analysis(self, result: AnalysisResult, symbol: Optional[str] = None) -> str:
        """
        Generate a text report for one analysis.

        Args:
            result: The analysis to describe
            symbol: Optional symbol shown in the header

        Returns:
            Report text
        """
        title = f"ELLIOTT WAVE ANALYSIS{' - ' + symbol.upper() if symbol else ''}"
        lines = [title, "=" * len(title), f"Status: {result.status.value}"]
        if result.message:
            lines.append(f"Message: {result.message}")

        if result.status == AnalysisStatus.ERROR:
            lines.append(f"Error: {result.error}")
            return "\n".join(lines)

        lines.append(f"Pivots: {len(result.pivots)}  Zig-zag points: {len(result.zigzag)}")
        if result.status != AnalysisStatus.SUCCESS:
            return "\n".join(lines)

        lines.extend([
            f"Patterns: {len(result.patterns)}",
            f"Trend: {result.trend}",
            f"Current price: {_fmt(result.current_price)}",
            "",
            "SUMMARY",
            "-------",
            result.summary,
            "",
        ])
        lines.extend(self._format_patterns(result.patterns[:TOP_PATTERNS_IN_REPORT]))

        wave = result.current_wave_analysis
        if wave:
            lines.extend([
                "",
                "CURRENT WAVE",
                "------------",
                f"Phase: {wave.current_wave}",
                f"Expected target: {_fmt(wave.expected_target)}",
                f"Stop loss: {_fmt(wave.stop_loss)}",
                f"Timeframe: {wave.timeframe}",
                f"Risk/reward: {wave.risk_reward if wave.risk_reward is not None else 'n/a'}",
            ])

        levels = result.dynamic_levels
        if levels and (levels.support or levels.resistance or levels.targets):
            lines.extend([
                "",
                "LEVELS",
                "------",
                f"Support: {', '.join(_fmt(v) for v in levels.support) or 'n/a'}",
                f"Resistance: {', '.join(_fmt(v) for v in levels.resistance) or 'n/a'}",
                f"Targets: {', '.join(_fmt(v) for v in levels.targets) or 'n/a'}",
            ])

        lines.extend(["", "RECOMMENDATIONS", "---------------"])
        lines.extend(self._format_recommendation(rec) for rec in result.recommendations)
        return "\n".join(lines)

    @staticmethod
    def _format_patterns(patterns: List[Pattern]) -> List[str]:
        lines = ["TOP PATTERNS", "------------"]
        for rank, pattern in enumerate(patterns, start=1):
            start, end = pattern.points[0], pattern.points[-1]
            lines.append(
                f"{rank}. {pattern.pattern_type.value} {pattern.direction.value} "
                f"({pattern.confidence:.1f}%) {_fmt(start.price)} -> {_fmt(end.price)}, "
                f"candles {start.index}-{end.index}"
            )
            if isinstance(pattern, MotivePattern):
                t = pattern.targets
                lines.append(f"   wave 5 targets: {_fmt(t.wave5_fib618)} / {_fmt(t.wave5_fib1000)} / {_fmt(t.wave5_fib1618)}")
            else:
                t = pattern.targets
                lines.append(f"   wave C targets: {_fmt(t.wave_c_fib618)} / {_fmt(t.wave_c_fib1000)} / {_fmt(t.wave_c_fib1618)}")
        return lines

    @staticmethod
    def _format_recommendation(rec: Recommendation) -> str:
        text = f"[{rec.type.upper()}] {rec.message} (confidence {rec.confidence:.1f}%)"
        if rec.entry is not None:
            text += f" entry {_fmt(rec.entry)}"
        if rec.targets:
            text += f" targets {', '.join(_fmt(v) for v in rec.targets)}"
        if rec.stop_loss is not None:
            text += f" stop {_fmt(rec.stop_loss)}"
        if rec.expected_completion is not None:
            text += f" completion {_fmt(rec.expected_completion)}"
        return text

    def save_report(self, result: AnalysisResult, symbol: Optional[str] = None, report_name: Optional[str] = None) -> str:
        """
        Write the report to `reports_dir`.

        Returns:
            Path to the report file, or "" when it could not be written
        """
        if self.reports_dir is None:
            raise ValueError("SystemReporter was created without a reports directory")
        if report_name is None:
            report_name = f"analysis_{datetime.datetime.now().strftime('%Y%m%d_%H%M%S')}"

        report_file = self.reports_dir / f"{report_name}.txt"
        try:
            self.reports_dir.mkdir(parents=True, exist_ok=True)
            report_file.write_text(self.format_analysis(result, symbol))
            logger.info(f"Report saved to {report_file}")
        except OSError as e:
            logger.error(f"Error saving report: {e}")
            return ""
        return str(report_file)
