import unittest

from triax.drivers import handshake
from triax.drivers.errors import HandshakeFailed
from triax.drivers.triax_sim import TriaxSimulator
from triax.utilities.channel import CR
from tests.helpers import FastHandshakeTestCase, ScriptedChannel

class TestNegotiate(FastHandshakeTestCase):
    def test_already_in_main_program(self):
        ch = ScriptedChannel([b'F'], terminator=b'')
        self.assertFalse(handshake.negotiate(ch))
        self.assertEqual(ch.written, [b' '])
        self.assertEqual(ch.terminator, CR)
        self.assertIn(('reopen', CR), ch.events)

    def test_terminal_then_boot(self):
        ch = ScriptedChannel([b' ', b'B', b'*', b'F'], terminator=b'')
        self.assertTrue(handshake.negotiate(ch))
        self.assertEqual(ch.written, [b' ', b'\xf8', b'\xde', b' ', b'O2000\x00', b' '])
        self.assertEqual(ch.terminator, CR)

    def test_autobaud(self):
        ch = ScriptedChannel([b'*', b'=', b'B', b'*', b'F'], terminator=b'')
        self.assertTrue(handshake.negotiate(ch))
        self.assertEqual(ch.written, [b' ', b'\xf7', b' ', b'O2000\x00', b' '])

    def test_autobaud_without_intelligent_mode(self):
        ch = ScriptedChannel([b'*', b'', b'B', b'*', b'F'], terminator=b'')
        self.assertTrue(handshake.negotiate(ch))
        self.assertEqual(ch.written[:4], [b' ', b'\xf7', b'\xf8', b'\xde'])

    def test_unexpected_answers_retried(self):
        ch = ScriptedChannel([b'?', b'', b'F'], terminator=b'')
        self.assertFalse(handshake.negotiate(ch))
        self.assertEqual(len(ch.written), 3)

    def test_boot_refuses_main_program(self):
        ch = ScriptedChannel([b'B', b'x'], terminator=b'')
        with self.assertRaises(HandshakeFailed) as cm:
            handshake.negotiate(ch)
        self.assertEqual(cm.exception.reason, 'Device did not enter MAIN program.')
        self.assertEqual(ch.terminator, b'')

    def test_no_answer(self):
        ch = ScriptedChannel(terminator=b'')
        with self.assertRaises(HandshakeFailed) as cm:
            handshake.negotiate(ch)
        self.assertEqual(ch.written, [b' '] * handshake.ATTEMPTS)
        self.assertIn('power-down', str(cm.exception))
        self.assertNotIn(('reopen', CR), ch.events)

    def test_simulated_power_up(self):
        sim = TriaxSimulator()
        self.assertTrue(handshake.negotiate(sim))
        self.assertEqual(sim.mode, 'main')
        self.assertEqual(sim.terminator, CR)

    def test_simulated_terminal_mode(self):
        sim = TriaxSimulator(mode='terminal')
        self.assertTrue(handshake.negotiate(sim))
        self.assertEqual(sim.mode, 'main')

if __name__ == '__main__':
    unittest.main()
