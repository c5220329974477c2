import dataclasses
import unittest
from typing import List

import facts.base


@dataclasses.dataclass
class FactTest:
    name: str
    fact: type
    output: List[str]
    want: object


TEST_CASES = [
    FactTest(
        name='authorized_keys_strips_blank_lines',
        fact=facts.base.AuthorizedKeys,
        output=['ssh-rsa AAAA one@host  ', '', '   ', 'ssh-ed25519 BBBB two@host'],
        want=['ssh-rsa AAAA one@host', 'ssh-ed25519 BBBB two@host'],
    ),
    FactTest(
        name='authorized_keys_empty',
        fact=facts.base.AuthorizedKeys,
        output=[],
        want=[],
    ),
    FactTest(
        name='matching_lines_keep_content',
        fact=facts.base.MatchingLines,
        output=['PasswordAuthentication yes\n', 'PasswordAuthentication no'],
        want=['PasswordAuthentication yes', 'PasswordAuthentication no'],
    ),
    FactTest(
        name='command_succeeds_yes',
        fact=facts.base.CommandSucceeds,
        output=['yes'],
        want=True,
    ),
    FactTest(
        name='command_succeeds_no',
        fact=facts.base.CommandSucceeds,
        output=['no'],
        want=False,
    ),
    FactTest(
        name='command_succeeds_last_line_wins',
        fact=facts.base.CommandSucceeds,
        output=['motd noise', 'yes'],
        want=True,
    ),
    FactTest(
        name='command_succeeds_no_output',
        fact=facts.base.CommandSucceeds,
        output=[],
        want=False,
    ),
    FactTest(
        name='command_output_joined',
        fact=facts.base.CommandOutput,
        output=['OpenSSL 1.1.1w  11 Sep 2023', ''],
        want='OpenSSL 1.1.1w  11 Sep 2023',
    ),
]


class FactTestCase(unittest.TestCase):

    def test_defaults(self):
        self.assertEqual(facts.base.AuthorizedKeys.default(), [])
        self.assertEqual(facts.base.MatchingLines.default(), [])
        self.assertFalse(facts.base.CommandSucceeds.default())
        self.assertEqual(facts.base.CommandOutput.default(), '')

    def test_commands_quote_paths(self):
        self.assertEqual(facts.base.AuthorizedKeys().command('/home/a b/.ssh/authorized_keys'),
                         "cat '/home/a b/.ssh/authorized_keys' 2>/dev/null || true")
        self.assertEqual(facts.base.CommandSucceeds().command('test -d /opt'),
                         '{ test -d /opt; } >/dev/null 2>&1 && echo yes || echo no')


def gen_test(test_case: FactTest):

    def test(self):
        self.assertEqual(test_case.fact().process(test_case.output), test_case.want)

    return test


for case in TEST_CASES:
    setattr(FactTestCase, f'test_{case.name}', gen_test(case))


if __name__ == '__main__':
    unittest.main()
