import unittest
from unittest import mock

import pyvisa
import serial

from triax.drivers.errors import ConfigError
from triax.utilities import safe_gpib, safe_serial, transport
from triax.utilities.channel import CR
from triax.utilities.config import ConnectionConfig

class TestSafeSerial(unittest.TestCase):
    def setUp(self):
        patcher = mock.patch.object(safe_serial.serial, 'Serial')
        self.Serial = patcher.start()
        self.addCleanup(patcher.stop)
        self.addCleanup(safe_serial.safe_ports.clear)

    def test_opened_8n1(self):
        ch = safe_serial.SafeSerial('COM5', 9600, timeout=0.5)
        kwargs = self.Serial.call_args.kwargs
        self.assertEqual((kwargs['port'], kwargs['baudrate'], kwargs['timeout']), ('COM5', 9600, 0.5))
        self.assertEqual((kwargs['bytesize'], kwargs['parity'], kwargs['stopbits']), (serial.EIGHTBITS, serial.PARITY_NONE, serial.STOPBITS_ONE))
        self.assertIs(safe_serial.SafeSerial('COM5', 9600), ch)

    def test_read_line_strips_terminator(self):
        ch = safe_serial.SafeSerial('COM5', 9600, terminator=CR)
        self.Serial.return_value.read_until.return_value = b'375.5\r'
        self.assertEqual(ch.read_line(), b'375.5')
        self.Serial.return_value.read_until.assert_called_with(CR)

    def test_timeout_applied(self):
        ch = safe_serial.SafeSerial('COM5', 9600)
        ch.timeout = 300
        self.assertEqual(self.Serial.return_value.timeout, 300)

    def test_close_releases_port(self):
        ch = safe_serial.SafeSerial('COM5', 9600)
        ch.close()
        self.assertNotIn('COM5', safe_serial.safe_ports)

    def test_reused_port_switches_baud_rate(self):
        ch = safe_serial.SafeSerial('COM5', 9600)
        self.assertIs(safe_serial.SafeSerial('COM5', 19200), ch)
        self.assertEqual(ch.baudrate, 19200)
        self.assertEqual(self.Serial.return_value.baudrate, 19200)

    def test_port_busy(self):
        self.Serial.side_effect = serial.SerialException('busy')
        with mock.patch.object(safe_serial._SafeSerial, 'OPEN_DLY', 0):
            with self.assertRaises(ConfigError):
                safe_serial.SafeSerial('COM6', 9600)
        self.assertEqual(self.Serial.call_count, safe_serial._SafeSerial.OPEN_RETRIES + 1)

class TestSafeGpib(unittest.TestCase):
    def setUp(self):
        patcher = mock.patch.object(safe_gpib.pyvisa, 'ResourceManager')
        self.ResourceManager = patcher.start()
        self.addCleanup(patcher.stop)
        self.inst = self.ResourceManager.return_value.open_resource.return_value

    def test_open(self):
        ch = safe_gpib.SafeGpib(0, 3, timeout=2.0)
        self.ResourceManager.return_value.open_resource.assert_called_with('GPIB0::3::INSTR')
        self.assertEqual(self.inst.timeout, 2000)
        self.assertEqual(ch.backend_in_use, 'default')

    def test_falls_back_to_next_backend(self):
        rm = self.ResourceManager.return_value
        self.ResourceManager.side_effect = [OSError('no VISA library'), rm]
        ch = safe_gpib.SafeGpib(0, 3)
        self.assertEqual(ch.backend_in_use, '@py')
        self.ResourceManager.assert_called_with('@py')

    def test_vendor_picks_backend_order(self):
        self.assertEqual(safe_gpib.SafeGpib(0, 3, vendor='keysight').backends, ['', '@py'])
        ch = safe_gpib.SafeGpib(0, 3, vendor='ics')
        self.assertEqual(ch.backends, ['@py', ''])
        self.ResourceManager.assert_called_with('@py')
        self.assertEqual(ch.backend_in_use, '@py')

    def test_no_backend(self):
        self.ResourceManager.side_effect = OSError('no VISA library')
        with self.assertRaises(ConfigError):
            safe_gpib.SafeGpib(0, 3)

    def test_read_timeout_is_empty(self):
        ch = safe_gpib.SafeGpib(0, 3)
        self.inst.read_bytes.side_effect = pyvisa.errors.VisaIOError(pyvisa.constants.StatusCode.error_timeout)
        self.assertEqual(ch.read(1), b'')

    def test_reopen_sets_termination(self):
        ch = safe_gpib.SafeGpib(0, 3)
        ch.reopen(CR)
        self.assertEqual(self.inst.read_termination, '\r')
        self.inst.read_raw.return_value = b'o\r'
        self.assertEqual(ch.read_line(), b'o')

class TestOpenChannel(unittest.TestCase):
    def test_serial(self):
        with mock.patch.object(transport, 'SafeSerial') as SafeSerial:
            SafeSerial.return_value.terminator = b''
            ch = transport.open_channel(ConnectionConfig.serial('COM2', 4800))
        SafeSerial.assert_called_once_with('COM2', 4800, timeout=transport.TIMEOUT)
        self.assertIs(ch, SafeSerial.return_value)

    def test_serial_reused_in_main_framing(self):
        with mock.patch.object(transport, 'SafeSerial') as SafeSerial:
            SafeSerial.return_value.terminator = CR
            transport.open_channel(ConnectionConfig.serial('COM2'))
        SafeSerial.return_value.reopen.assert_called_once_with(b'')

    def test_gpib(self):
        with mock.patch.object(transport, 'SafeGpib') as SafeGpib:
            transport.open_channel(ConnectionConfig.gpib(1, 9))
        SafeGpib.assert_called_once_with(1, 9, timeout=transport.TIMEOUT, vendor='ni')

    def test_gpib_vendor_passed_on(self):
        with mock.patch.object(transport, 'SafeGpib') as SafeGpib:
            transport.open_channel(ConnectionConfig.gpib(0, 3, 'keysight'))
        self.assertEqual(SafeGpib.call_args.kwargs['vendor'], 'keysight')

    def test_unknown_port_choice(self):
        with self.assertRaises(ConfigError):
            transport.open_channel(ConnectionConfig('usb'))

if __name__ == '__main__':
    unittest.main()
