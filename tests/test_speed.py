import unittest

from triax.drivers import speed
from triax.drivers.errors import ProtocolError, RangeError, Timeout
from triax.drivers.protocol import CommandProtocol
from triax.drivers.speed import HIGH_TORQUE_SPEED, MotorSpeed, MotorSpeedProfile
from triax.drivers.triax_sim import TriaxSimulator
from triax.utilities.channel import CR

NORMAL = MotorSpeed(1000, 4000, 250)

class TestCheckMotorSpeed(unittest.TestCase):
    def test_valid(self):
        self.assertEqual(speed.check_motor_speed(1000, 4000, 250), NORMAL)
        self.assertEqual(speed.check_motor_speed(1000.4, 4000.5, 250), MotorSpeed(1000, 4001, 250))
        self.assertEqual(str(NORMAL), '1000,4000,250')

    def test_invalid(self):
        for args in ((50, 4000, 250), (1000, 90000, 250), (2000, 1000, 250), (1000, 4000, 50), (1000, 4000, 70000), ('fast', 4000, 250)):
            with self.assertRaises(RangeError):
                speed.check_motor_speed(*args)

class TestMotorSpeedProfile(unittest.TestCase):
    def setUp(self):
        self.sim = TriaxSimulator(mode='main', terminator=CR)
        self.protocol = CommandProtocol(self.sim)

    def test_get_and_set(self):
        self.assertEqual(speed.get_motor_speed(self.protocol), NORMAL)
        speed.set_motor_speed(self.protocol, MotorSpeed(1200, 5000, 300))
        self.assertEqual(self.sim.speed, MotorSpeed(1200, 5000, 300))
        self.assertEqual(self.sim.commands, ['C0', 'B0,1200,5000,300'])

    def test_boost_and_restore(self):
        with MotorSpeedProfile(self.protocol) as saved:
            self.assertEqual(saved, NORMAL)
            self.assertEqual(self.sim.speed, HIGH_TORQUE_SPEED)
        self.assertEqual(self.sim.speed, NORMAL)
        self.assertEqual(self.sim.speed_history, [HIGH_TORQUE_SPEED, NORMAL])

    def test_restore_after_error(self):
        with self.assertRaises(ProtocolError):
            with MotorSpeedProfile(self.protocol):
                self.protocol.execute('bogus')
        self.assertEqual(self.sim.speed, NORMAL)

    def test_restore_failure_keeps_block_error(self):
        with self.assertRaises(Timeout):
            with MotorSpeedProfile(self.protocol):
                self.sim.fail_commands.add('B0')
                raise Timeout('Motors still busy.')
        self.assertEqual(self.sim.speed, HIGH_TORQUE_SPEED)

    def test_restore_failure_reported(self):
        with self.assertRaises(ProtocolError):
            with MotorSpeedProfile(self.protocol):
                self.sim.fail_commands.add('B0')

    def test_run(self):
        self.assertEqual(MotorSpeedProfile(self.protocol).run(lambda: self.sim.speed), HIGH_TORQUE_SPEED)
        self.assertEqual(self.sim.speed, NORMAL)

if __name__ == '__main__':
    unittest.main()
