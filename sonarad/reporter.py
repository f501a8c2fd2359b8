"""Report generation module."""

import base64
import csv
import json
import logging
import os
from datetime import datetime
from typing import Any, Dict, Iterable, List, Sequence
from jinja2 import Template
from colorama import Fore, Style, init
from sonarad.exceptions import ReportWriteError
from sonarad.models import PrivilegedAccount, Report, StaleAccount, WeakPolicyAccount
from sonarad import config

# Initialize colorama for Windows
init()

TEMPLATE_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), 'templates')

# Dataset name -> (header, row keys); shared by the HTML export buttons and CSV files
DATASETS = {
    'privileged-accounts': (
        ['Display Name', 'Account', 'Enabled', 'Groups'],
        ['display_name', 'account_id', 'enabled', 'groups'],
    ),
    'stale-accounts': (
        ['Display Name', 'Account', 'Last Logon', 'Days Since Logon'],
        ['display_name', 'account_id', 'last_auth', 'days_since_auth'],
    ),
    'weak-policy-accounts': (
        ['Display Name', 'Account'],
        ['display_name', 'account_id'],
    ),
}


def _csv_value(value: Any) -> Any:
    if value is None:
        return ''
    if isinstance(value, bool):
        return 'Yes' if value else 'No'
    return value


def sort_privileged(accounts: Iterable[PrivilegedAccount]) -> List[PrivilegedAccount]:
    return sorted(accounts, key=lambda a: a.display_name.casefold())


def sort_stale(accounts: Iterable[StaleAccount]) -> List[StaleAccount]:
    """Most stale first; never-authenticated accounts lead."""
    return sorted(
        accounts,
        key=lambda a: (not a.never_authenticated, -(a.days_since_auth or 0), a.display_name.casefold())
    )


def sort_weak_policy(accounts: Iterable[WeakPolicyAccount]) -> List[WeakPolicyAccount]:
    return sorted(accounts, key=lambda a: a.display_name.casefold())


def encode_dataset(rows: Sequence[Dict[str, Any]]) -> str:
    """
    Serialize rows for embedding inside a script block.
    
    JSON is base64 encoded so quotes, angle brackets and control characters
    in directory values never reach the script context verbatim.
    
    Args:
        rows: List of JSON-serializable dictionaries
    
    Returns:
        ASCII base64 text
    """
    payload = json.dumps(list(rows), ensure_ascii=False, separators=(',', ':'))
    return base64.b64encode(payload.encode('utf-8')).decode('ascii')


class Reporter:
    """Generate reports in multiple formats."""
    
    def __init__(self):
        """Initialize reporter."""
        self.logger = logging.getLogger(__name__)
    
    def build_datasets(self, report: Report) -> Dict[str, List[Dict[str, Any]]]:
        """Sorted, serializable detail lists keyed by dataset name."""
        return {
            'privileged-accounts': [a.to_dict() for a in sort_privileged(report.privileged_accounts)],
            'stale-accounts': [a.to_dict() for a in sort_stale(report.stale_accounts)],
            'weak-policy-accounts': [a.to_dict() for a in sort_weak_policy(report.weak_policy_accounts)],
        }
    
    def render_html(self, report: Report) -> str:
        """
        Render the self-contained HTML document.
        
        Args:
            report: Assembled report
        
        Returns:
            HTML text
        """
        template_path = os.path.join(TEMPLATE_DIR, config.REPORT_SETTINGS['template'])
        with open(template_path, 'r', encoding='utf-8') as f:
            template_content = f.read()
        
        datasets = self.build_datasets(report)
        template_data = {
            'title': config.REPORT_SETTINGS['title'],
            'metrics': report.metrics,
            'generated_at': report.metrics.generated_at.strftime('%Y-%m-%d %H:%M:%S %Z').strip(),
            'warnings': [str(w) for w in report.warnings],
            'encoded': {name: encode_dataset(rows) for name, rows in datasets.items()},
            'columns': {name: header for name, (header, _) in DATASETS.items()},
            'keys': {name: keys for name, (_, keys) in DATASETS.items()},
        }
        
        template = Template(template_content, autoescape=True)
        return template.render(**template_data)
    
    def generate_html_report(self, report: Report, output_file: str):
        """
        Generate HTML report.
        
        Args:
            report: Assembled report
            output_file: Output file path
        
        Raises:
            ReportWriteError: if the file cannot be written
        """
        self.logger.info(f"Generating HTML report: {output_file}")
        html_content = self.render_html(report)
        self._write(output_file, html_content)
        self.logger.info("HTML report generated successfully")
    
    def generate_json_report(self, report: Report, output_file: str):
        """
        Generate JSON report.
        
        Args:
            report: Assembled report
            output_file: Output file path
        """
        self.logger.info(f"Generating JSON report: {output_file}")
        
        data = {
            'metadata': {
                'generated_at': report.metrics.generated_at.isoformat(),
                'tool': 'SonarAD',
                'partial': report.is_partial,
            },
            'metrics': report.metrics.to_dict(),
            'warnings': [{'source': w.source, 'reason': w.reason} for w in report.warnings],
        }
        data.update(self.build_datasets(report))
        
        self._write(output_file, json.dumps(data, indent=2, ensure_ascii=False))
        self.logger.info("JSON report generated successfully")
    
    def export_csv(self, report: Report, output_dir: str, timestamp: datetime = None) -> List[str]:
        """
        Write one CSV file per detail list.
        
        Files are UTF-8 with a byte-order mark, every field quoted, named
        <dataset>-<YYYY-MM-DD-HHMMSS>.csv like the in-browser export.
        
        Args:
            report: Assembled report
            output_dir: Directory for the files
            timestamp: Time used in file names (defaults to now)
        
        Returns:
            Paths of the written files
        """
        stamp = (timestamp or datetime.now()).strftime(config.REPORT_SETTINGS['csv_timestamp_format'])
        datasets = self.build_datasets(report)
        paths = []
        
        try:
            os.makedirs(output_dir, exist_ok=True)
            for name, (header, keys) in DATASETS.items():
                path = os.path.join(output_dir, f'{name}-{stamp}.csv')
                with open(path, 'w', encoding='utf-8-sig', newline='') as f:
                    writer = csv.writer(f, quoting=csv.QUOTE_ALL)
                    writer.writerow(header)
                    for row in datasets[name]:
                        writer.writerow([_csv_value(row[key]) for key in keys])
                paths.append(path)
        except OSError as e:
            raise ReportWriteError(output_dir, str(e)) from e
        
        self.logger.info(f"Exported {len(paths)} CSV files to {output_dir}")
        return paths
    
    def generate_text_report(self, report: Report, output_file: str = None):
        """
        Generate text summary for console or file.
        
        Args:
            report: Assembled report
            output_file: Output file path (None for console output)
        """
        metrics = report.metrics
        color = output_file is None
        lines = []
        
        lines.append("=" * 60)
        lines.append("AD METRICS SUMMARY")
        lines.append("=" * 60)
        lines.append(f"Domain:             {metrics.domain_name}")
        lines.append(f"Generated:          {metrics.generated_at.strftime('%Y-%m-%d %H:%M:%S')}")
        lines.append("")
        lines.append(f"Enabled Users:      {metrics.enabled_users}")
        lines.append(f"Disabled Users:     {metrics.disabled_users}")
        lines.append(f"Groups:             {metrics.total_groups}")
        lines.append(f"Computers:          {metrics.total_computers}")
        lines.append(f"OUs:                {metrics.total_ous}")
        lines.append(f"Domain Controllers: {metrics.domain_controllers}")
        lines.append(f"GPOs:               {metrics.gpo_count}")
        lines.append(f"Cert Templates:     {metrics.cert_template_count}")
        lines.append("")
        lines.append(self._label(
            f"Privileged Accounts: {metrics.enabled_privileged_count} enabled, "
            f"{metrics.disabled_privileged_count} disabled", Fore.RED, color))
        lines.append(self._label(
            f"Stale Accounts (> {metrics.stale_threshold_days} days): {metrics.stale_count}",
            Fore.YELLOW, color))
        lines.append(self._label(
            f"Password Not Required: {metrics.weak_policy_count}", Fore.YELLOW, color))
        
        if report.warnings:
            lines.append("")
            lines.append(self._label(f"[!] PARTIAL DATA ({len(report.warnings)} warnings)", Fore.MAGENTA, color))
            for warning in report.warnings:
                lines.append(f"    - {warning}")
        
        lines.append("=" * 60)
        report_text = '\n'.join(lines)
        
        if output_file:
            self._write(output_file, report_text)
            self.logger.info(f"Text report saved to: {output_file}")
        else:
            print(report_text)
    
    def _label(self, text: str, color: str, use_color: bool) -> str:
        if not use_color:
            return text
        return f"{color}{text}{Style.RESET_ALL}"
    
    def _write(self, output_file: str, content: str):
        try:
            with open(output_file, 'w', encoding='utf-8') as f:
                f.write(content)
        except OSError as e:
            raise ReportWriteError(output_file, str(e)) from e
