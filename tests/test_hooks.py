"""
Tests for hook discovery and execution.
"""

import io
import json
import os
import shutil
import subprocess
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

from cuti.config import ConfigManager
from cuti.core import HookError, WorktreeResult
from cuti.hooks import (
    HookArgs,
    HookConfig,
    HookContext,
    HookManager,
    is_executable,
)


def make_context(**kwargs):
    defaults = {
        'command': 'worktree',
        'subcommand': 'add',
        'phase': 'pre',
        'args': HookArgs(branch='feature-x', force=False, jira=False),
    }
    defaults.update(kwargs)
    return HookContext(**defaults)


class HookTestCase(unittest.TestCase):

    def setUp(self):
        self.temp_dir = tempfile.mkdtemp()
        self.temp_path = Path(self.temp_dir)
        self.hooks_dir = self.temp_path / 'hooks'
        self.hooks_dir.mkdir()
        self.config = ConfigManager(
            str(self.temp_path / 'global'),
            str(self.temp_path / 'local')
        )
        self.stdout = patch('sys.stdout', new_callable=io.StringIO)
        self.stderr = patch('sys.stderr', new_callable=io.StringIO)
        self.fake_stdout = self.stdout.start()
        self.fake_stderr = self.stderr.start()

    def tearDown(self):
        self.stdout.stop()
        self.stderr.stop()
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def write_hook(self, name, body, executable=True):
        path = self.hooks_dir / name
        path.write_text(f"#!/bin/sh\n{body}\n")
        path.chmod(0o755 if executable else 0o644)
        return path

    def make_manager(self):
        return HookManager(self.config, hooks_dir=str(self.hooks_dir))


class TestHookDiscovery(HookTestCase):
    """Test finding hooks on disk."""

    def test_find_hooks_matches_name_and_prefix(self):
        self.write_hook('post-create.20-second', 'true')
        self.write_hook('post-create', 'true')
        self.write_hook('post-create.10-first', 'true')
        self.write_hook('post-created', 'true')
        self.write_hook('pre-create', 'true')

        hooks = self.make_manager().find_hooks('post-create')

        self.assertEqual(
            [hook.name for hook in hooks],
            ['post-create', 'post-create.10-first', 'post-create.20-second']
        )

    def test_non_executable_hooks_are_skipped(self):
        self.write_hook('pre-create', 'true', executable=False)
        self.assertEqual(self.make_manager().find_hooks('pre-create'), [])

    def test_missing_hooks_directory(self):
        manager = HookManager(self.config, hooks_dir=str(self.temp_path / 'absent'))
        self.assertEqual(manager.find_hooks('pre-create'), [])
        self.assertEqual(manager.run_hooks('pre-create', make_context()), [])

    def test_default_hooks_directory(self):
        with patch('pathlib.Path.cwd', return_value=self.temp_path):
            manager = HookManager(self.config)
        self.assertEqual(manager.hooks_dir, self.temp_path / '.cuti' / 'hooks')

    def test_is_executable(self):
        executable = self.write_hook('a', 'true')
        plain = self.write_hook('b', 'true', executable=False)
        self.assertTrue(is_executable(executable))
        self.assertFalse(is_executable(plain))
        self.assertFalse(is_executable(self.hooks_dir))


class TestHookConfig(HookTestCase):
    """Test the hooks configuration object."""

    def test_defaults(self):
        config = self.make_manager().get_config()
        self.assertTrue(config.enabled)
        self.assertFalse(config.fail_on_error)
        self.assertEqual(config.timeout, 30000)

    def test_from_config_store(self):
        self.config.set('hooks', {'enabled': False, 'failOnError': True, 'timeout': 500})
        manager = self.make_manager()

        self.assertFalse(manager.is_enabled())
        self.assertTrue(manager.get_config().fail_on_error)
        self.assertEqual(manager.get_config().timeout, 500)

    def test_from_mapping_ignores_garbage(self):
        config = HookConfig.from_mapping({'timeout': 'soon'})
        self.assertEqual(config.timeout, 30000)
        self.assertEqual(HookConfig.from_mapping('not a dict'), HookConfig())


class TestHookContext(unittest.TestCase):
    """Test hook context serialization."""

    def test_to_env_without_result(self):
        context = make_context()
        env = context.to_env()

        self.assertEqual(env['CUTI_HOOK_COMMAND'], 'worktree')
        self.assertEqual(env['CUTI_HOOK_SUBCOMMAND'], 'add')
        self.assertEqual(env['CUTI_HOOK_PHASE'], 'pre')
        self.assertEqual(env['CUTI_HOOK_BRANCH'], 'feature-x')
        self.assertEqual(env['CUTI_HOOK_PATH'], '')
        self.assertEqual(env['CUTI_HOOK_FORCE'], 'false')
        self.assertEqual(env['CUTI_HOOK_JIRA'], 'false')
        self.assertNotIn('CUTI_HOOK_RESULT_PATH', env)

        data = json.loads(env['CUTI_HOOK_CONTEXT'])
        self.assertEqual(data['args'], {'branch': 'feature-x', 'force': False, 'jira': False})
        self.assertNotIn('result', data)

    def test_to_env_with_result(self):
        result = WorktreeResult(
            path='/src/app_worktrees/feature-x',
            branch='feature-x',
            repo_root='/src/app',
            repo_name='app'
        )
        context = make_context(phase='post', result=result)
        env = context.to_env()

        self.assertEqual(env['CUTI_HOOK_RESULT_PATH'], '/src/app_worktrees/feature-x')
        self.assertEqual(env['CUTI_HOOK_RESULT_BRANCH'], 'feature-x')
        self.assertEqual(env['CUTI_HOOK_RESULT_REPO_ROOT'], '/src/app')
        self.assertEqual(env['CUTI_HOOK_RESULT_REPO_NAME'], 'app')
        data = json.loads(env['CUTI_HOOK_CONTEXT'])
        self.assertEqual(data['result']['repoName'], 'app')

    def test_error_in_dict(self):
        context = make_context(phase='post', error='boom')
        self.assertEqual(context.to_dict()['error'], 'boom')


class TestHookExecution(HookTestCase):
    """Test running hooks."""

    def test_hook_receives_environment(self):
        out_file = self.temp_path / 'env.txt'
        self.write_hook(
            'pre-create',
            f'echo "$CUTI_HOOK_BRANCH $CUTI_HOOK_PHASE $CUTI_HOOK_FORCE" > "{out_file}"'
        )

        results = self.make_manager().run_hooks('pre-create', make_context())

        self.assertEqual(len(results), 1)
        self.assertTrue(results[0].success)
        self.assertEqual(out_file.read_text().strip(), 'feature-x pre false')

    def test_hook_output_is_printed(self):
        self.write_hook('post-create', 'echo hello from hook')

        results = self.make_manager().run_hooks('post-create', make_context(phase='post'))

        self.assertEqual(results[0].output, 'hello from hook')
        self.assertIn('hello from hook', self.fake_stdout.getvalue())

    def test_failure_continues_without_fail_on_error(self):
        marker = self.temp_path / 'second-ran'
        self.write_hook('pre-create.1', 'echo broken >&2\nexit 3')
        self.write_hook('pre-create.2', f'touch "{marker}"')

        results = self.make_manager().run_hooks('pre-create', make_context())

        self.assertEqual([r.success for r in results], [False, True])
        self.assertEqual(results[0].exit_code, 3)
        self.assertEqual(results[0].output, 'broken')
        self.assertIn('Command failed', results[0].error)
        self.assertTrue(marker.exists())
        self.assertIn("Hook 'pre-create.1' failed with exit code 3", self.fake_stderr.getvalue())

    def test_failure_raises_with_fail_on_error(self):
        marker = self.temp_path / 'second-ran'
        self.config.set('hooks.failOnError', True)
        self.write_hook('pre-create.1', 'exit 1')
        self.write_hook('pre-create.2', f'touch "{marker}"')

        with self.assertRaises(HookError) as context:
            self.make_manager().run_hooks('pre-create', make_context())

        self.assertIn('pre-create.1', str(context.exception))
        self.assertFalse(marker.exists())

    def test_disabled_hooks_do_not_run(self):
        marker = self.temp_path / 'ran'
        self.config.set('hooks.enabled', False)
        self.write_hook('pre-create', f'touch "{marker}"')

        self.assertEqual(self.make_manager().run_hooks('pre-create', make_context()), [])
        self.assertFalse(marker.exists())

    def test_timeout(self):
        self.config.set('hooks.timeout', 200)
        self.write_hook('pre-remove', 'exec sleep 5')

        results = self.make_manager().run_hooks('pre-remove', make_context(subcommand='remove'))

        self.assertFalse(results[0].success)
        self.assertEqual(results[0].exit_code, 124)
        self.assertIn('timed out', results[0].error)

    def test_zero_timeout_waits(self):
        self.config.set('hooks.timeout', 0)
        self.write_hook('pre-remove', 'sleep 0.2\necho done')

        with patch('subprocess.run', wraps=subprocess.run) as mock_run:
            results = self.make_manager().run_hooks('pre-remove', make_context(subcommand='remove'))

        self.assertTrue(results[0].success)
        self.assertEqual(results[0].output, 'done')
        self.assertIsNone(mock_run.call_args[1]['timeout'])

    def test_unstartable_hook(self):
        # Executable bit set but no interpreter line
        path = self.hooks_dir / 'post-remove'
        path.write_bytes(b'\x00\x01\x02')
        path.chmod(0o755)

        results = self.make_manager().run_hooks('post-remove', make_context(phase='post'))

        self.assertFalse(results[0].success)
        self.assertEqual(results[0].exit_code, 126)

    def test_hook_inherits_process_environment(self):
        out_file = self.temp_path / 'inherited.txt'
        self.write_hook('pre-create', f'echo "$CUTI_TEST_MARKER" > "{out_file}"')

        with patch.dict(os.environ, {'CUTI_TEST_MARKER': 'inherited'}):
            self.make_manager().run_hooks('pre-create', make_context())

        self.assertEqual(out_file.read_text().strip(), 'inherited')


if __name__ == '__main__':
    unittest.main()
