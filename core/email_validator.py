# core/email_validator.py
"""
Email deliverability validation

An address is accepted only when it is well formed and its domain publishes
at least one MX record. The format gate always runs first, so malformed input
never triggers DNS traffic. Every lookup failure (NXDOMAIN, no answer, no
nameservers, timeout, anything else) is reported as a plain rejection.
"""

import logging
import re
from typing import List, Optional

import dns.exception
import dns.resolver

logger = logging.getLogger(__name__)

EMAIL_FORMAT = re.compile(
    r'^[A-Z0-9._%+-]+@[A-Z0-9.-]+\.[A-Z]{2,}$',
    re.IGNORECASE
)


class DeliverableEmailValidator:
    """
    Format check followed by a single DNS MX lookup

    No caching and no retries: every call to ``is_valid`` that passes the
    format gate performs exactly one query.
    """

    def __init__(self,
                 resolver: Optional[dns.resolver.Resolver] = None,
                 timeout: float = 5.0,
                 nameservers: Optional[List[str]] = None):
        """
        Args:
            resolver: Resolver to query; built from the system configuration when omitted
            timeout: Total lifetime of one lookup, in seconds
            nameservers: Optional nameserver override for the built resolver
        """
        if resolver is None:
            # An explicit nameserver list skips reading /etc/resolv.conf
            resolver = dns.resolver.Resolver(configure=not nameservers)
            if nameservers:
                resolver.nameservers = list(nameservers)
            resolver.lifetime = timeout
        self.dns_resolver = resolver

    @classmethod
    def from_config(cls, config) -> 'DeliverableEmailValidator':
        return cls(
            timeout=config.get('DNS_TIMEOUT', 5.0),
            nameservers=config.get('DNS_NAMESERVERS') or None
        )

    @staticmethod
    def is_well_formed(value) -> bool:
        if value is None or not isinstance(value, str) or not value.strip():
            return False
        return EMAIL_FORMAT.fullmatch(value) is not None

    def is_valid(self, value) -> bool:
        """Return True if ``value`` is well formed and its domain has an MX record"""
        if not self.is_well_formed(value):
            return False

        domain = value[value.index('@') + 1:]
        return self.has_mx_record(domain)

    def has_mx_record(self, domain: str) -> bool:
        """Return True iff the resolver reports at least one MX record for ``domain``"""
        try:
            answers = self.dns_resolver.resolve(domain, 'MX')
        except dns.resolver.NXDOMAIN:
            logger.debug(f"MX lookup for {domain}: domain does not exist")
            return False
        except dns.resolver.NoAnswer:
            logger.debug(f"MX lookup for {domain}: no MX records")
            return False
        except dns.exception.DNSException as e:
            logger.warning(f"MX lookup for {domain} failed: {e}")
            return False
        except Exception as e:
            logger.error(f"Unexpected error during MX lookup for {domain}: {e}", exc_info=True)
            return False

        return answers is not None and len(answers) > 0
