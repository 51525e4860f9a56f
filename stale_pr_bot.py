#!/usr/bin/env python3
"""
GitHub Stale Pull Request Bot

This script scans the open pull requests of a single GitHub repository,
warns the authors of inactive pull requests by email and closes them after
a grace period if they stay inactive.

The only state the bot relies on lives on the pull requests themselves:
- 'stale-warning' label: a warning has already been sent
- 'do not stale' label: the pull request is exempt from staleness checks
"""

import argparse
import logging
import os
import smtplib
import ssl
from datetime import datetime, timedelta, timezone
from email.mime.text import MIMEText
from typing import Optional
from urllib.parse import urlparse

import requests
import yaml
from dotenv import find_dotenv, load_dotenv
from github import Auth, Github, GithubException
from jinja2 import Template


logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


BANNER = """
#############################################################
#                                                           #
#                       stale-pr-bot                        #
#                                                           #
#############################################################
"""

SEPARATOR = "-" * 61

WARNING_EMAIL_TEMPLATE = """Hello {{ author }},

Your pull request #{{ number }} ({{ title }}) has had no activity for more than {{ days_inactive }} days.
Please update it within the next {{ warning_period }} days, or it will be closed automatically.

PR Link: {{ web_url }}

If this pull request should stay open regardless of activity, ask a maintainer
to add the '{{ opt_out_label }}' label.

Best regards,
The Stale PR Bot
"""

CLOSURE_EMAIL_TEMPLATE = """Hello {{ author }},

Your pull request #{{ number }} ({{ title }}) has been closed due to inactivity.

PR Link: {{ web_url }}

If you wish to continue working, please feel free to reopen it or submit a new pull request.

Best regards,
The Stale PR Bot
"""

# Labels that carry meaning for the bot (compared case-insensitively)
DO_NOT_STALE_LABEL = "do not stale"
STALE_WARNING_LABEL = "stale-warning"

# Policy engine actions
ACTION_NONE = "none"
ACTION_REMOVE_WARNING = "remove_warning"
ACTION_WARN = "warn"
ACTION_WAIT = "wait"
ACTION_CLOSE = "close"

# Notification outcomes
NOTIFY_SENT = "sent"
NOTIFY_SKIPPED = "skipped"
NOTIFY_FAILED = "failed"

# SMTP transport security policies
TLS_REQUIRE = "require"
TLS_OPPORTUNISTIC = "opportunistic"
TLS_NEVER = "never"
TLS_POLICIES = (TLS_REQUIRE, TLS_OPPORTUNISTIC, TLS_NEVER)

DEFAULT_SMTP_PORT = 587
DEFAULT_EMAIL_DOMAIN = "example.com"
DEFAULT_TLS_POLICY = TLS_OPPORTUNISTIC
DEFAULT_PER_PAGE = 100

# Environment variable -> (config section, key). A section of None means top level.
ENV_VARS = {
    'GITHUB_TOKEN': ('github', 'token'),
    'GITHUB_BASE_URL': ('github', 'api_url'),
    'GITHUB_OWNER': ('github', 'owner'),
    'GITHUB_REPO': ('github', 'repo'),
    'DAYS_INACTIVE': (None, 'days_inactive'),
    'WARNING_PERIOD': (None, 'warning_period'),
    'SMTP_SERVER': ('smtp', 'host'),
    'SMTP_PORT': ('smtp', 'port'),
    'SMTP_USER': ('smtp', 'username'),
    'SMTP_PASSWORD': ('smtp', 'password'),
    'SMTP_FROM': ('smtp', 'from_email'),
    'SMTP_TLS_POLICY': ('smtp', 'tls_policy'),
    'EMAIL_DOMAIN': (None, 'email_domain'),
}

# Command-line flag -> (environment variable it overrides, help text)
CLI_FLAGS = {
    '--github-token': ('GITHUB_TOKEN', 'GitHub API token'),
    '--github-base-url': (
        'GITHUB_BASE_URL', 'GitHub API base URL (e.g. https://api.github.com/)'
    ),
    '--owner': ('GITHUB_OWNER', 'GitHub repository owner'),
    '--repo': ('GITHUB_REPO', 'GitHub repository name'),
    '--days-inactive': ('DAYS_INACTIVE', 'Number of days to consider a PR stale'),
    '--warning-period': (
        'WARNING_PERIOD', 'Warning period in days before closing a stale PR'
    ),
    '--smtp-server': ('SMTP_SERVER', 'SMTP server address'),
    '--smtp-port': ('SMTP_PORT', f'SMTP server port (default: {DEFAULT_SMTP_PORT})'),
    '--smtp-user': ('SMTP_USER', 'SMTP username'),
    '--smtp-password': ('SMTP_PASSWORD', 'SMTP password'),
    '--smtp-from': ('SMTP_FROM', 'Sender address (default: SMTP username)'),
    '--smtp-tls-policy': (
        'SMTP_TLS_POLICY',
        f"STARTTLS policy: {', '.join(TLS_POLICIES)} (default: {DEFAULT_TLS_POLICY})"
    ),
    '--email-domain': (
        'EMAIL_DOMAIN',
        "Fallback email domain used when a user's public email is unavailable "
        f"(default: {DEFAULT_EMAIL_DOMAIN})"
    ),
}


class ConfigurationError(Exception):
    """Raised when configuration is invalid or missing required fields."""


# =============================================================================
# Configuration
# =============================================================================


def _set_config_value(config: dict, section: Optional[str], key: str, value) -> None:
    if section is None:
        config[key] = value
        return
    if not config.get(section):
        config[section] = {}
    config[section][key] = value


def _flag_dest(flag: str) -> str:
    return flag.lstrip('-').replace('-', '_')


def load_config_file(config_path: str) -> dict:
    """Load a YAML configuration file. An empty file yields an empty dict."""
    with open(config_path, 'r', encoding='utf-8') as f:
        config = yaml.safe_load(f)
    if config is None:
        return {}
    if not isinstance(config, dict):
        raise ConfigurationError(
            f"Configuration file {config_path} must contain a mapping"
        )
    return config


def apply_env_overrides(config: dict, environ=None) -> dict:
    """
    Overlay environment variables onto a configuration dictionary.

    Empty values are treated as unset.

    Args:
        config: Configuration dictionary to update in place
        environ: Mapping to read from (defaults to os.environ)

    Returns:
        The updated configuration dictionary
    """
    if environ is None:
        environ = os.environ
    for env_name, (section, key) in ENV_VARS.items():
        value = environ.get(env_name)
        if value:
            _set_config_value(config, section, key, value)
    return config


def apply_cli_overrides(config: dict, args: argparse.Namespace) -> dict:
    """Overlay command-line flags that were given onto a configuration dictionary."""
    for flag, (env_name, _) in CLI_FLAGS.items():
        value = getattr(args, _flag_dest(flag), None)
        if value is not None and value != '':
            section, key = ENV_VARS[env_name]
            _set_config_value(config, section, key, value)
    return config


def apply_defaults(config: dict) -> dict:
    """Fill in optional settings that were not configured."""
    config['github'] = config.get('github') or {}
    smtp = config['smtp'] = config.get('smtp') or {}
    smtp.setdefault('port', DEFAULT_SMTP_PORT)
    smtp.setdefault('tls_policy', DEFAULT_TLS_POLICY)
    if not config.get('email_domain'):
        config['email_domain'] = DEFAULT_EMAIL_DOMAIN
    return config


def _as_positive_int(value, name: str) -> int:
    # bool is an int subclass, and int() would truncate a fractional float
    if isinstance(value, bool) or (isinstance(value, float) and not value.is_integer()):
        raise ConfigurationError(f"'{name}' must be a positive integer, got {value!r}")
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ConfigurationError(
            f"'{name}' must be a positive integer, got {value!r}"
        ) from None
    if number <= 0:
        raise ConfigurationError(f"'{name}' must be a positive integer, got {value!r}")
    return number


def validate_config(config: dict) -> None:
    """
    Validate that all required configuration keys are present and well formed.

    Numeric settings read from the environment or the command line arrive as
    strings and are converted to integers in place.

    Args:
        config: Configuration dictionary to validate

    Raises:
        ConfigurationError: If required keys are missing or invalid
    """
    required_github_keys = ['token', 'api_url', 'owner', 'repo']
    required_smtp_keys = ['host', 'username', 'password']

    if not config:
        raise ConfigurationError("Configuration is empty")

    github_config = config.get('github') or {}
    for key in required_github_keys:
        if not github_config.get(key):
            raise ConfigurationError(f"Missing required GitHub config key: '{key}'")

    parsed_url = urlparse(str(github_config['api_url']))
    if parsed_url.scheme not in ('http', 'https') or not parsed_url.netloc:
        raise ConfigurationError(
            f"GitHub API URL must be an http(s) URL, got {github_config['api_url']!r}"
        )

    smtp_config = config.get('smtp') or {}
    for key in required_smtp_keys:
        if not smtp_config.get(key):
            raise ConfigurationError(f"Missing required SMTP config key: '{key}'")

    config['days_inactive'] = _as_positive_int(config.get('days_inactive'), 'days_inactive')
    config['warning_period'] = _as_positive_int(config.get('warning_period'), 'warning_period')
    smtp_config['port'] = _as_positive_int(smtp_config.get('port', DEFAULT_SMTP_PORT), 'smtp.port')
    if not smtp_config.get('from_email'):
        smtp_config['from_email'] = smtp_config['username']
    if not config.get('email_domain'):
        config['email_domain'] = DEFAULT_EMAIL_DOMAIN

    tls_policy = str(smtp_config.get('tls_policy', DEFAULT_TLS_POLICY)).lower()
    if tls_policy not in TLS_POLICIES:
        raise ConfigurationError(
            f"Unsupported SMTP TLS policy: '{tls_policy}'. "
            f"Must be one of: {', '.join(TLS_POLICIES)}."
        )
    smtp_config['tls_policy'] = tls_policy

    if tls_policy == TLS_NEVER:
        logger.warning(
            "SMTP TLS policy is 'never'. Credentials and message content "
            "will be sent in clear text."
        )


def load_config(args: argparse.Namespace, environ=None) -> dict:
    """
    Build the run configuration from all sources and validate it.

    Precedence, lowest to highest: YAML file, environment variables,
    command-line flags.
    """
    config = {}
    if getattr(args, 'config', None):
        config = load_config_file(args.config)
    apply_env_overrides(config, environ)
    apply_cli_overrides(config, args)
    apply_defaults(config)
    validate_config(config)
    return config


# =============================================================================
# GitHub Functions
# =============================================================================


def create_github_client(config: dict) -> Github:
    """
    Create an authenticated GitHub client and verify the connection.

    Args:
        config: Configuration dictionary with 'github' section

    Returns:
        Authenticated PyGithub Github client

    Raises:
        ConfigurationError: If authentication or the connectivity check fails
    """
    token = config['github']['token']
    api_url = config['github']['api_url'].rstrip('/')
    try:
        gh = Github(auth=Auth.Token(token), base_url=api_url, per_page=DEFAULT_PER_PAGE)
        # Verify authentication by fetching the authenticated user
        login = gh.get_user().login
    except GithubException as e:
        message = e.data.get('message', str(e)) if isinstance(e.data, dict) else str(e)
        raise ConfigurationError(f"Failed to authenticate with GitHub: {message}") from e
    except requests.exceptions.RequestException as e:
        raise ConfigurationError(f"Could not connect to GitHub at {api_url}: {e}") from e
    logger.info(f"Authenticated as GitHub user: {login}")
    return gh


def get_open_pull_requests(gh, owner: str, repo_name: str) -> list:
    """
    Fetch every open pull request of a repository.

    PyGithub's PaginatedList follows the pagination links until exhausted.
    Errors are not caught: a failed listing aborts the run.

    Args:
        gh: Authenticated GitHub client
        owner: Repository owner
        repo_name: Repository name

    Returns:
        List of PyGithub PullRequest objects
    """
    repo = gh.get_repo(f"{owner}/{repo_name}")
    pulls = list(repo.get_pulls(state='open'))
    logger.info(f"Total open PRs fetched: {len(pulls)}")
    return pulls


def has_label(labels, label_name: str) -> bool:
    """Return True if label_name is among labels, ignoring case."""
    wanted = label_name.lower()
    return any(name.lower() == wanted for name in labels)


def build_pr_info(pr) -> dict:
    """
    Build a snapshot dictionary from a GitHub PullRequest object.

    Args:
        pr: GitHub PullRequest object

    Returns:
        Dictionary with the pull request fields used by the policy engine
    """
    updated_at = pr.updated_at
    if updated_at is not None and updated_at.tzinfo is None:
        updated_at = updated_at.replace(tzinfo=timezone.utc)

    return {
        'number': pr.number,
        'title': pr.title,
        'web_url': pr.html_url,
        'author_username': pr.user.login if pr.user else '',
        'updated_at': updated_at,
        'state': pr.state,
        'labels': [label.name for label in pr.labels],
    }


def add_warning_label(pr, dry_run: bool = False) -> bool:
    """Add the stale-warning label to a pull request."""
    if dry_run:
        logger.info(f"[DRY RUN] Would add '{STALE_WARNING_LABEL}' label to PR #{pr.number}")
        return True
    try:
        pr.add_to_labels(STALE_WARNING_LABEL)
    except GithubException as e:
        logger.error(f"Error adding label to PR #{pr.number}: {e}")
        return False
    logger.info(f"Added '{STALE_WARNING_LABEL}' label to PR #{pr.number}.")
    return True


def remove_warning_label(pr, dry_run: bool = False) -> bool:
    """Remove the stale-warning label from a pull request."""
    if dry_run:
        logger.info(
            f"[DRY RUN] Would remove '{STALE_WARNING_LABEL}' label from PR #{pr.number}"
        )
        return True
    try:
        pr.remove_from_labels(STALE_WARNING_LABEL)
    except GithubException as e:
        logger.error(f"Error removing label from PR #{pr.number}: {e}")
        return False
    logger.info(f"Removed '{STALE_WARNING_LABEL}' label from PR #{pr.number}.")
    return True


def close_pull_request(pr, dry_run: bool = False) -> bool:
    """
    Close a pull request on GitHub.

    Args:
        pr: GitHub PullRequest object
        dry_run: If True, don't actually close the PR

    Returns:
        True if PR was closed successfully, False otherwise
    """
    if dry_run:
        logger.info(f"[DRY RUN] Would close PR #{pr.number}")
        return True
    try:
        pr.edit(state='closed')
    except GithubException as e:
        logger.error(f"Error closing PR #{pr.number}: {e}")
        return False
    logger.info(f"Closed PR #{pr.number}.")
    return True


# =============================================================================
# Recipient Resolution and Email
# =============================================================================


def resolve_recipient_email(username: str, public_email: Optional[str], fallback_domain: str) -> str:
    """
    Pick the address to notify for a GitHub user.

    Uses the public profile email when there is one, otherwise builds
    '<lowercased username>@<fallback_domain>'.

    Args:
        username: GitHub login
        public_email: Public profile email, if any
        fallback_domain: Domain used to synthesize an address

    Returns:
        Email address, or empty string if username is empty
    """
    if public_email:
        logger.info(f"Found public email '{public_email}' for user '{username}'.")
        return public_email
    if not username:
        return ''
    email = f"{username.lower()}@{fallback_domain}"
    logger.info(f"Constructed email '{email}' for user '{username}'.")
    return email


def get_author_email(pr, fallback_domain: str) -> str:
    """
    Look up the public email of a pull request's author and resolve the recipient.

    A failed lookup is not fatal; the fallback address is used instead.
    """
    user = pr.user
    if not user:
        return ''
    username = user.login or ''
    public_email = None
    try:
        # Accessing email on a partial user object fetches the full profile
        public_email = user.email
    except GithubException as e:
        logger.warning(f"Error fetching user email for {username}: {e}")
    return resolve_recipient_email(username, public_email, fallback_domain)


def generate_warning_email(pr_info: dict, days_inactive: int, warning_period: int) -> tuple:
    """Render the subject and body of the stale warning email."""
    subject = f"Your pull request #{pr_info['number']} is stale"
    body = Template(WARNING_EMAIL_TEMPLATE).render(
        author=pr_info['author_username'],
        number=pr_info['number'],
        title=pr_info['title'],
        web_url=pr_info['web_url'],
        days_inactive=days_inactive,
        warning_period=warning_period,
        opt_out_label=DO_NOT_STALE_LABEL,
    )
    return subject, body


def generate_closure_email(pr_info: dict) -> tuple:
    """Render the subject and body of the closed-due-to-inactivity email."""
    subject = f"Your pull request #{pr_info['number']} has been closed"
    body = Template(CLOSURE_EMAIL_TEMPLATE).render(
        author=pr_info['author_username'],
        number=pr_info['number'],
        title=pr_info['title'],
        web_url=pr_info['web_url'],
    )
    return subject, body


def _negotiate_tls(server: smtplib.SMTP, smtp_config: dict) -> None:
    tls_policy = smtp_config.get('tls_policy', DEFAULT_TLS_POLICY)
    if tls_policy == TLS_NEVER:
        return
    if server.has_extn('starttls'):
        server.starttls(context=ssl.create_default_context())
        server.ehlo()
    elif tls_policy == TLS_REQUIRE:
        raise smtplib.SMTPNotSupportedError(
            f"SMTP server {smtp_config['host']} does not support STARTTLS"
        )
    else:
        logger.warning(
            f"SMTP server {smtp_config['host']} does not support STARTTLS; "
            f"continuing without encryption"
        )


def send_email(
    smtp_config: dict,
    to_email: str,
    subject: str,
    body: str,
    dry_run: bool = False
) -> bool:
    """
    Send a plain-text email notification.

    The session connects, upgrades with STARTTLS according to the configured
    policy, authenticates and sends a single message. No retry is attempted.

    Args:
        smtp_config: SMTP server configuration
        to_email: Recipient email address
        subject: Email subject
        body: Plain-text content of the email
        dry_run: If True, don't actually send the email

    Returns:
        True if email was sent successfully
    """
    if dry_run:
        logger.info(f"[DRY RUN] Would send email to: {to_email}")
        logger.debug(f"Subject: {subject}")
        return True

    msg = MIMEText(body, 'plain', 'utf-8')
    msg['Subject'] = subject
    msg['From'] = smtp_config['from_email']
    msg['To'] = to_email

    try:
        with smtplib.SMTP(smtp_config['host'], smtp_config['port']) as server:
            server.ehlo()
            _negotiate_tls(server, smtp_config)
            server.login(smtp_config['username'], smtp_config['password'])
            server.send_message(msg)
        logger.info(f"Email sent successfully to {to_email}")
        return True
    except (smtplib.SMTPException, OSError) as e:
        logger.error(f"Failed to send email to {to_email}: {e}")
        return False


def notify_author(pr, pr_info: dict, config: dict, kind: str, dry_run: bool = False) -> str:
    """
    Email the author of a pull request.

    Args:
        pr: GitHub PullRequest object
        pr_info: Snapshot dictionary from build_pr_info
        config: Configuration dictionary
        kind: 'warning' or 'closure'
        dry_run: If True, don't actually send the email

    Returns:
        NOTIFY_SENT, NOTIFY_SKIPPED (no address could be determined) or NOTIFY_FAILED
    """
    email_address = get_author_email(pr, config['email_domain'])
    if not email_address:
        logger.warning(
            f"Email could not be determined for the author of PR #{pr_info['number']}. "
            f"Skipping {kind} notification."
        )
        return NOTIFY_SKIPPED

    if kind == 'warning':
        subject, body = generate_warning_email(
            pr_info, config['days_inactive'], config['warning_period']
        )
    else:
        subject, body = generate_closure_email(pr_info)

    logger.info(f"Sending {kind} email to {email_address} for PR #{pr_info['number']}.")
    if send_email(config['smtp'], email_address, subject, body, dry_run=dry_run):
        return NOTIFY_SENT
    return NOTIFY_FAILED


# =============================================================================
# Policy Engine
# =============================================================================


def decide_action(pr_info: dict, days_inactive: int, warning_period: int, now: datetime) -> str:
    """
    Decide what to do with one open pull request.

    Rules, in priority order:
    1. 'do not stale' label: exempt; drop a leftover warning label
    2. Updated within days_inactive: active; drop the warning label if present
    3. Stale and already warned: close once warning_period days have passed
       since the last update, otherwise wait
    4. Stale and not warned: send a warning

    Args:
        pr_info: Snapshot dictionary from build_pr_info
        days_inactive: Number of days after which a PR is stale
        warning_period: Number of days between warning and closing
        now: Current time (timezone-aware)

    Returns:
        One of the ACTION_* constants
    """
    number = pr_info['number']
    labels = pr_info.get('labels', [])
    warned = has_label(labels, STALE_WARNING_LABEL)

    if has_label(labels, DO_NOT_STALE_LABEL):
        logger.info(f"PR #{number} has '{DO_NOT_STALE_LABEL}' label.")
        return ACTION_REMOVE_WARNING if warned else ACTION_NONE

    updated_at = pr_info.get('updated_at')
    if updated_at is None:
        logger.warning(f"Could not determine last activity for PR #{number}. Skipping.")
        return ACTION_NONE

    cutoff = now - timedelta(days=days_inactive)
    if updated_at >= cutoff:
        logger.info(f"PR #{number} is active.")
        return ACTION_REMOVE_WARNING if warned else ACTION_NONE

    logger.info(f"PR #{number} is stale.")
    if not warned:
        return ACTION_WARN

    # The label carries no timestamp, so the grace period runs from the last update
    if now - updated_at > timedelta(days=warning_period):
        return ACTION_CLOSE
    return ACTION_WAIT


def new_summary() -> dict:
    return {
        'total_open_prs': 0,
        'warnings_sent': 0,
        'prs_closed': 0,
        'labels_removed': 0,
        'within_warning_period': 0,
        'emails_failed': 0,
        'emails_skipped': 0,
        'errors': 0,
        'warned_prs': [],
        'closed_prs': [],
    }


def process_pull_request(pr, config: dict, now: datetime, summary: dict, dry_run: bool = False) -> str:
    """
    Apply the policy engine to a single pull request and carry out the result.

    Failures are logged and counted in the summary; they never raise.

    Returns:
        The action decided for the pull request
    """
    pr_info = build_pr_info(pr)
    number = pr_info['number']
    action = decide_action(pr_info, config['days_inactive'], config['warning_period'], now)

    if action == ACTION_REMOVE_WARNING:
        logger.info(f"Removing '{STALE_WARNING_LABEL}' label from PR #{number}.")
        if remove_warning_label(pr, dry_run=dry_run):
            summary['labels_removed'] += 1
        else:
            summary['errors'] += 1

    elif action == ACTION_WAIT:
        logger.info(f"PR #{number} is still within the warning period.")
        summary['within_warning_period'] += 1

    elif action == ACTION_WARN:
        logger.info(f"Sending warning for PR #{number}.")
        outcome = notify_author(pr, pr_info, config, 'warning', dry_run=dry_run)
        if outcome == NOTIFY_FAILED:
            logger.error(f"Error sending warning email for PR #{number}; label not added.")
            summary['emails_failed'] += 1
            return action
        if outcome == NOTIFY_SKIPPED:
            summary['emails_skipped'] += 1
        if add_warning_label(pr, dry_run=dry_run):
            summary['warnings_sent'] += 1
            summary['warned_prs'].append(number)
        else:
            summary['errors'] += 1

    elif action == ACTION_CLOSE:
        logger.info(f"Closing PR #{number} as it has been inactive after the warning period.")
        if not close_pull_request(pr, dry_run=dry_run):
            summary['errors'] += 1
            return action
        summary['prs_closed'] += 1
        summary['closed_prs'].append(number)
        outcome = notify_author(pr, pr_info, config, 'closure', dry_run=dry_run)
        if outcome == NOTIFY_FAILED:
            logger.error(f"Error sending closure email for PR #{number}.")
            summary['emails_failed'] += 1
        elif outcome == NOTIFY_SKIPPED:
            summary['emails_skipped'] += 1
        else:
            logger.info(f"Sent closure notification for PR #{number}.")

    return action


def process_stale_pull_requests(config: dict, dry_run: bool = False, now: Optional[datetime] = None) -> dict:
    """
    Main function to scan the repository and handle stale pull requests.

    Client creation and the open PR listing are fatal and propagate;
    everything after that is handled per pull request.

    Args:
        config: Validated configuration dictionary
        dry_run: If True, don't mutate pull requests or send emails
        now: Current time, defaults to datetime.now(timezone.utc)

    Returns:
        Summary of actions taken
    """
    if now is None:
        now = datetime.now(timezone.utc)

    logger.info("Creating GitHub client...")
    gh = create_github_client(config)

    logger.info(SEPARATOR)
    logger.info("Fetching open PRs...")
    pulls = get_open_pull_requests(gh, config['github']['owner'], config['github']['repo'])

    summary = new_summary()
    summary['total_open_prs'] = len(pulls)

    if not pulls:
        logger.info("No open PRs found.")
        return summary

    for pr in pulls:
        logger.info(SEPARATOR)
        logger.info(f"Processing PR #{pr.number}: {pr.title}")
        logger.info(SEPARATOR)
        try:
            process_pull_request(pr, config, now, summary, dry_run=dry_run)
        except Exception as e:
            logger.error(f"Error processing PR #{pr.number}: {e}")
            summary['errors'] += 1

    return summary


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description='Warn the authors of inactive GitHub pull requests by email '
                    'and close the pull requests after a grace period. '
                    'Every setting can also be given as an environment variable.'
    )
    parser.add_argument(
        '-c', '--config',
        default=None,
        help='Optional path to a YAML configuration file'
    )
    for flag, (env_name, help_text) in CLI_FLAGS.items():
        parser.add_argument(
            flag,
            dest=_flag_dest(flag),
            default=None,
            help=f"{help_text} [env: {env_name}]"
        )
    parser.add_argument(
        '--dry-run',
        action='store_true',
        help='Run without sending emails or changing pull requests'
    )
    parser.add_argument(
        '-v', '--verbose',
        action='store_true',
        help='Enable verbose logging'
    )
    return parser.parse_args(argv)


def log_summary(summary: dict) -> None:
    logger.info("=" * 50)
    logger.info("Stale PR Summary")
    logger.info("=" * 50)
    logger.info(f"Open PRs scanned: {summary['total_open_prs']}")
    logger.info(f"Warnings sent: {summary['warnings_sent']}")
    logger.info(f"PRs closed: {summary['prs_closed']}")
    logger.info(f"Warning labels removed: {summary['labels_removed']}")
    logger.info(f"PRs within warning period: {summary['within_warning_period']}")
    logger.info(f"Emails failed: {summary['emails_failed']}")
    logger.info(f"Emails skipped (no address): {summary['emails_skipped']}")
    logger.info(f"Errors: {summary['errors']}")
    if summary['warned_prs']:
        logger.info(f"Warned PRs: {', '.join(f'#{n}' for n in summary['warned_prs'])}")
    if summary['closed_prs']:
        logger.info(f"Closed PRs: {', '.join(f'#{n}' for n in summary['closed_prs'])}")


def main(argv=None) -> Optional[int]:
    """Main entry point for the script."""
    logger.info(BANNER)

    # Search from the working directory, not from where the module is installed
    if not load_dotenv(find_dotenv(usecwd=True)):
        logger.debug("No .env file found")

    args = parse_args(argv)

    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    try:
        config = load_config(args)
    except FileNotFoundError:
        logger.error(f"Configuration file not found: {args.config}")
        return 1
    except yaml.YAMLError as e:
        logger.error(f"Invalid YAML in configuration file: {e}")
        return 1
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        logger.error(
            "Please ensure all required flags or environment variables are set."
        )
        return 1

    logger.info(SEPARATOR)
    if args.dry_run:
        logger.info("Starting the stale PR bot in dry-run mode...")
    else:
        logger.info("Starting the stale PR bot...")
    logger.info(SEPARATOR)

    try:
        summary = process_stale_pull_requests(config, dry_run=args.dry_run)
    except ConfigurationError as e:
        logger.error(f"GitHub connection test failed: {e}")
        return 1
    except (GithubException, requests.exceptions.RequestException) as e:
        logger.error(f"Error fetching PRs: {e}")
        return 1

    log_summary(summary)
    return 0


if __name__ == '__main__':
    exit(main())
