"""
SonarAD - Active Directory metrics report generator
Read-only; run with an account allowed to query the directory.
"""

import argparse
import logging
import os
import sys

from sonarad import config
from sonarad.assembler import ReportAssembler
from sonarad.domain_enum import DomainEnumerator
from sonarad.exceptions import DirectoryQueryError, DirectoryUnavailableError, ReportWriteError
from sonarad.ldap_connector import LDAPConnector
from sonarad.reporter import Reporter


def setup_logging(verbose: bool = False):
    """Configure logging."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )


def _default_stale_days() -> int:
    value = os.environ.get(config.STALE_DAYS_ENV_VAR)
    if value is None:
        return config.STALE_SETTINGS['threshold_days']
    try:
        return int(value)
    except ValueError:
        return config.STALE_SETTINGS['threshold_days']


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description='Active Directory metrics report generator',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # HTML report in the current directory
  sonar-ad -d example.com -u auditor -p Password123 -t 192.168.1.10
  
  # Custom output path and 90 day staleness threshold
  sonar-ad -d example.com -u auditor -t 192.168.1.10 -o /tmp/ad.html --stale-days 90
  
  # Password from the environment, JSON and CSV alongside the HTML report
  SONARAD_PASSWORD=... sonar-ad -d example.com -u auditor -t 192.168.1.10 --output-json ad.json --csv-dir csv
        """
    )
    
    # Connection arguments
    conn_group = parser.add_argument_group('Connection')
    conn_group.add_argument('-d', '--domain', required=True, help='Target domain (e.g., example.com)')
    conn_group.add_argument('-u', '--username', required=True, help='Username for authentication')
    conn_group.add_argument('-p', '--password',
                            help=f'Password for authentication (default: ${config.PASSWORD_ENV_VAR})')
    conn_group.add_argument('-t', '--target', required=True, help='Domain controller IP address')
    conn_group.add_argument('--lmhash', default='', help='LM hash for pass-the-hash')
    conn_group.add_argument('--nthash', default='', help='NT hash for pass-the-hash')
    conn_group.add_argument('--kerberos', action='store_true', help='Use Kerberos authentication')
    conn_group.add_argument('--ldaps', action='store_true', help='Connect over LDAPS')
    
    # Report options
    report_group = parser.add_argument_group('Report Options')
    report_group.add_argument('--stale-days', type=int, default=_default_stale_days(),
                              help='Days without logon before an enabled account is stale (default: 180)')
    report_group.add_argument('--show-domain', action='store_true',
                              help='Print the domain DNS name and exit')
    
    # Output options
    output_group = parser.add_argument_group('Output Options')
    output_group.add_argument('-o', '--output', default=config.REPORT_SETTINGS['default_output'],
                              help='HTML report path (default: %(default)s)')
    output_group.add_argument('--output-json', help='Also write a JSON report to file')
    output_group.add_argument('--csv-dir', help='Also export detail lists as CSV into this directory')
    output_group.add_argument('--quiet', action='store_true', help='Suppress console summary')
    
    # General options
    parser.add_argument('-v', '--verbose', action='store_true', help='Verbose output')
    
    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)
    
    # Setup logging
    setup_logging(args.verbose)
    logger = logging.getLogger(__name__)
    
    password = args.password or os.environ.get(config.PASSWORD_ENV_VAR, '')
    if not password and not args.nthash and not args.kerberos:
        parser.error(f"Either --password, ${config.PASSWORD_ENV_VAR}, --nthash or --kerberos is required")
    if args.stale_days < 0:
        parser.error("--stale-days must not be negative")
    
    ldap_conn = LDAPConnector(
        domain=args.domain,
        username=args.username,
        password=password,
        dc_ip=args.target,
        use_kerberos=args.kerberos,
        lmhash=args.lmhash,
        nthash=args.nthash,
        use_ssl=args.ldaps or None
    )
    
    if not args.show_domain:
        logger.info("=" * 60)
        logger.info("SonarAD - AD Metrics Report")
        logger.info("=" * 60)
        logger.info(f"Target Domain: {args.domain}")
        logger.info(f"Domain Controller: {args.target}")
        logger.info(f"Username: {args.username}")
        logger.info("")
        logger.info("[*] Establishing LDAP connection...")
    
    if not ldap_conn.connect():
        logger.error("[!] Directory service unavailable: failed to establish LDAP connection")
        sys.exit(1)
    
    try:
        if args.show_domain:
            print(DomainEnumerator(ldap_conn).get_domain_name())
            return
        
        logger.info("[+] LDAP connection established successfully")
        logger.info("")
        
        logger.info("[*] Collecting directory metrics...")
        report = ReportAssembler(ldap_conn, stale_days=args.stale_days).assemble()
        logger.info(f"[+] {report.metrics.enabled_users} enabled / {report.metrics.disabled_users} disabled users")
        logger.info(f"[+] {len(report.privileged_accounts)} privileged accounts")
        logger.info(f"[+] {report.metrics.stale_count} stale accounts")
        logger.info(f"[+] {report.metrics.weak_policy_count} accounts with password not required")
        for warning in report.warnings:
            logger.warning(f"[!] Degraded: {warning}")
        logger.info("")
        
        reporter = Reporter()
        
        logger.info(f"[*] Generating HTML report: {args.output}")
        reporter.generate_html_report(report, args.output)
        logger.info(f"[+] Report saved to: {os.path.abspath(args.output)}")
        
        if args.output_json:
            logger.info(f"[*] Generating JSON report: {args.output_json}")
            reporter.generate_json_report(report, args.output_json)
        
        if args.csv_dir:
            logger.info(f"[*] Exporting CSV files to: {args.csv_dir}")
            reporter.export_csv(report, args.csv_dir)
        
        if not args.quiet:
            reporter.generate_text_report(report)
        
        logger.info("")
        logger.info("=" * 60)
        logger.info("[+] Report completed successfully")
        logger.info("=" * 60)
    
    except (DirectoryQueryError, DirectoryUnavailableError) as e:
        logger.error(f"[!] Mandatory directory query failed: {e}")
        sys.exit(1)
    except ReportWriteError as e:
        logger.error(f"[!] {e}")
        sys.exit(1)
    except KeyboardInterrupt:
        logger.warning("\n[!] Report generation interrupted by user")
        sys.exit(1)
    except Exception as e:
        logger.error(f"[!] Error during report generation: {e}", exc_info=True)
        sys.exit(1)
    finally:
        ldap_conn.close()


if __name__ == '__main__':
    main()
