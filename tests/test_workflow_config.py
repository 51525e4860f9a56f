"""Tests for the scheduled workflow and container configuration."""

import os
import re
import unittest

import yaml

import stale_pr_bot


ROOT_DIR = os.path.dirname(os.path.dirname(__file__))


class TestScheduledWorkflow(unittest.TestCase):
    """Validate the environment passed to the bot by the cron workflow."""

    def setUp(self):
        workflow_path = os.path.join(ROOT_DIR, '.github', 'workflows', 'stale-pr-cron.yml')
        with open(workflow_path) as f:
            self.workflow = yaml.safe_load(f)

    def _passed_env_vars(self):
        steps = self.workflow['jobs']['run-stale-pr-bot']['steps']
        run_step = next(step for step in steps if 'docker run' in step.get('run', ''))
        return re.findall(r'-e (\w+)=', run_step['run'])

    def test_only_known_variables_are_passed(self):
        """Every variable handed to the container should be read by the bot."""
        for name in self._passed_env_vars():
            self.assertIn(name, stale_pr_bot.ENV_VARS)

    def test_required_variables_are_passed(self):
        """Mandatory settings should all come from the workflow."""
        passed = set(self._passed_env_vars())
        for name in (
            'GITHUB_TOKEN', 'GITHUB_BASE_URL', 'GITHUB_OWNER', 'GITHUB_REPO',
            'DAYS_INACTIVE', 'WARNING_PERIOD', 'SMTP_SERVER', 'SMTP_USER',
            'SMTP_PASSWORD',
        ):
            self.assertIn(name, passed)


class TestExampleConfig(unittest.TestCase):
    """The shipped example configuration should pass validation."""

    def test_example_config_is_valid(self):
        config = stale_pr_bot.load_config_file(os.path.join(ROOT_DIR, 'config.example.yaml'))
        stale_pr_bot.apply_defaults(config)

        stale_pr_bot.validate_config(config)

        self.assertEqual(config['days_inactive'], 30)
        self.assertEqual(config['smtp']['tls_policy'], 'opportunistic')
