import unittest

from pyinfra.operations import apt, dnf

import tasks.config
import tasks.pkg


class PackagesTestCase(unittest.TestCase):

    def test_regex_dist_id(self):
        pkgs = tasks.pkg.get_packages('ubuntu', tasks.config.DEFAULT_PACKAGES)
        self.assertIn('build-essential', pkgs)
        self.assertEqual(pkgs, sorted(pkgs))

    def test_regex_requires_full_match(self):
        self.assertEqual(tasks.pkg.get_packages('ubuntu-core', {'(debian|ubuntu)': ['curl']}), [])

    def test_literal_dist_id(self):
        packages = {'fedora': ['openssl-devel', 'gcc'], 'ubuntu': ['libssl-dev']}
        self.assertEqual(tasks.pkg.get_packages('fedora', packages), ['gcc', 'openssl-devel'])

    def test_installer(self):
        self.assertIs(tasks.pkg.get_installer('debian'), apt)
        self.assertIs(tasks.pkg.get_installer('fedora'), dnf)

    def test_unknown_installer(self):
        with self.assertRaises(Exception):
            tasks.pkg.get_installer('arch')


if __name__ == '__main__':
    unittest.main()
