import os
import shutil
import tempfile
import unittest
from unittest import mock

import tasks.config
import tasks.credentials

PUBLIC_KEY = 'ssh-rsa AAAAB3NzaC1yc2EAAAADAQABAAABAQC7 jenkins@ci'


class EnsureKeyPairTestCase(unittest.TestCase):

    def setUp(self):
        tasks.credentials.do_ensure_key_pair.cache_clear()
        self.dir = tempfile.mkdtemp()
        self.key_pair = tasks.config.KeyPair(path=os.path.join(self.dir, 'id_rsa'))

    def tearDown(self):
        shutil.rmtree(self.dir)

    def write_pair(self, public=PUBLIC_KEY):
        with open(self.key_pair.path, 'w') as f:
            f.write('private\n')
        with open(self.key_pair.public_path, 'w') as f:
            f.write(f'{public}\n')

    def test_existing_pair_is_reused(self):
        self.write_pair()

        with mock.patch('tasks.ops.run_command') as run_command:
            public_key = tasks.credentials.ensure_key_pair(self.key_pair)

        run_command.assert_not_called()
        self.assertEqual(public_key.content, PUBLIC_KEY)
        self.assertEqual(public_key.key_type, 'ssh-rsa')
        with open(self.key_pair.path) as f:
            self.assertEqual(f.read(), 'private\n')

    def test_generates_missing_pair(self):

        def keygen(cmd):
            self.write_pair()
            return ''

        with mock.patch('tasks.ops.run_command', side_effect=keygen) as run_command:
            public_key = tasks.credentials.ensure_key_pair(self.key_pair)

        cmd = run_command.call_args[0][0]
        self.assertIn('ssh-keygen -q -t rsa -b 2048', cmd)
        self.assertTrue(cmd.endswith(self.key_pair.path))
        self.assertEqual(public_key.blob, 'AAAAB3NzaC1yc2EAAAADAQABAAABAQC7')

    def test_generation_failure(self):
        error = tasks.ops.CommandError('ssh-keygen', 1, stderr='boom')

        with mock.patch('tasks.ops.run_command', side_effect=error):
            with self.assertRaises(tasks.credentials.CredentialError):
                tasks.credentials.ensure_key_pair(self.key_pair)

    def test_missing_parent(self):
        key_pair = tasks.config.KeyPair(path=os.path.join(self.dir, 'missing', 'id_rsa'))

        with mock.patch('tasks.ops.run_command') as run_command:
            with self.assertRaisesRegex(tasks.credentials.CredentialError, 'does not exist'):
                tasks.credentials.ensure_key_pair(key_pair)

        run_command.assert_not_called()

    def test_private_key_without_public_key(self):
        with open(self.key_pair.path, 'w') as f:
            f.write('private\n')

        with self.assertRaises(tasks.credentials.CredentialError):
            tasks.credentials.ensure_key_pair(self.key_pair)

    def test_malformed_public_key(self):
        self.write_pair(public='garbage')

        with self.assertRaisesRegex(tasks.credentials.CredentialError, 'Malformed'):
            tasks.credentials.ensure_key_pair(self.key_pair)

    def test_result_is_memoised(self):
        self.write_pair()
        first = tasks.credentials.ensure_key_pair(self.key_pair)

        os.unlink(self.key_pair.public_path)
        second = tasks.credentials.ensure_key_pair(self.key_pair)

        self.assertIs(first, second)


class PublicKeyTestCase(unittest.TestCase):

    def setUp(self):
        self.key = tasks.credentials.PublicKey(path='id_rsa.pub', content=PUBLIC_KEY)

    def test_matches_ignores_comment(self):
        self.assertTrue(self.key.matches('ssh-rsa AAAAB3NzaC1yc2EAAAADAQABAAABAQC7 other@host'))

    def test_matches_with_options(self):
        self.assertTrue(self.key.matches('no-pty,from="10.0.0.1" ssh-rsa AAAAB3NzaC1yc2EAAAADAQABAAABAQC7'))

    def test_does_not_match_other_key(self):
        self.assertFalse(self.key.matches('ssh-rsa AAAAother jenkins@ci'))
        self.assertFalse(self.key.matches('ssh-ed25519 AAAAB3NzaC1yc2EAAAADAQABAAABAQC7'))

    def test_keygen_command(self):
        key_pair = tasks.config.KeyPair(path='/tmp/key', type='ed25519')
        self.assertEqual(tasks.credentials.get_keygen_command(key_pair), "ssh-keygen -q -t ed25519 -N '' -f /tmp/key")

    def test_unsupported_key_type(self):
        with self.assertRaises(tasks.credentials.CredentialError):
            tasks.credentials.get_keygen_command(tasks.config.KeyPair(type='dsa'))


if __name__ == '__main__':
    unittest.main()
