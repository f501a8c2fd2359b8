"""SonarAD: Active Directory metrics and account hygiene reports."""

__version__ = '1.0.0'
