import unittest

import dice
from cogs import dice_cog
from dice_details import BinaryOp, Dice, Literal, LogError
from sessions import MemoryLog


class BrokenLog:
    def record(self, user_id, result, sides, timestamp):
        raise LogError("session file is gone")


class RollCommandTest(unittest.TestCase):
    def setUp(self):
        self.log = MemoryLog()

    def test_roll_output(self):
        output = dice_cog._roll("2d1 * 3", 11, self.log)
        self.assertTrue(output.text.startswith("`2d1 * 3` ⇒ **6**  |  [1, 1] "))
        self.assertFalse(output.nice)
        self.assertEqual([r.user_id for r in self.log.records], [11, 11])

    def test_roll_error_output(self):
        for formula in ["5 / 0", "2d0", "(1+2", "1d"]:
            with self.subTest(formula=formula):
                output = dice_cog._roll(formula, 11, self.log)
                self.assertTrue(output.text.startswith("Roll error.\n```"))
        self.assertEqual(self.log.records, [])

    def test_too_many_dice(self):
        output = dice_cog._roll(f"{dice_cog.MAX_DICE_PER_ROLL + 1}d6", 11, self.log)
        self.assertTrue(output.text.startswith("Roll error."))
        self.assertEqual(self.log.records, [])

    def test_log_failure_still_rolls(self):
        output = dice_cog._roll("1d1 + 1", 11, BrokenLog())
        self.assertIn("**2**", output.text)
        self.assertIn("Failed to record 1 roll(s)", output.text)

    def test_nice(self):
        nice = dice.RollResult("1d100", Dice((69,)), "[69]", 69, [])
        self.assertTrue(dice_cog.is_nice(nice))
        two_dice = dice.RollResult("2d100", Dice((69, 1)), "[69, 1]", 70, [])
        self.assertFalse(dice_cog.is_nice(two_dice))
        literal = dice.RollResult("69", Literal(69), "69", 69, [])
        self.assertFalse(dice_cog.is_nice(literal))
        mixed = dice.RollResult("1d100+0", BinaryOp(Dice((69,)), "+", Literal(0)), "[69] + 0", 69, [])
        self.assertTrue(dice_cog.is_nice(mixed))


class CthulhuDarkCommandTest(unittest.TestCase):
    def test_output(self):
        log = MemoryLog()
        output = dice_cog._roll_cthulhu_dark(21, 4, log)
        lines = output.text.split("\n")
        self.assertTrue(lines[0].startswith("Result(s): "))
        self.assertEqual(len(lines[0].split(" / ")), 2)
        self.assertTrue(lines[1].startswith("Insight: "))
        self.assertEqual(len(log.records), 3)

    def test_useless_call(self):
        output = dice_cog._roll_cthulhu_dark(0, 4, MemoryLog())
        self.assertIn(":rage:", output.text)


if __name__ == "__main__":
    unittest.main()
