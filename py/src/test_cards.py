import unittest

import cards
from cogs import cards_cog


class FixedRandom:
    def __init__(self, value):
        self.value = value
        self.calls = []

    def randint(self, a, b):
        self.calls.append((a, b))
        return self.value


class CardTest(unittest.TestCase):
    def assertCard(self, position, two_chars, name):
        card = cards.card_at(position)
        self.assertTrue(card.is_valid())
        self.assertEqual(card.two_chars(), two_chars)
        self.assertEqual(str(card), name)

    def test_card_positions(self):
        self.assertCard(1, "AC", "Ace of Clubs")
        self.assertCard(10, "0C", "10 of Clubs")
        self.assertCard(13, "KC", "King of Clubs")
        self.assertCard(14, "AH", "Ace of Hearts")
        self.assertCard(37, "JS", "Jack of Spades")
        self.assertCard(52, "KD", "King of Diamonds")
        self.assertCard(53, "XX", "Joker")
        self.assertCard(54, "XX", "Joker")

    def test_out_of_deck(self):
        for position in [0, 55]:
            with self.subTest(position=position):
                with self.assertRaises(ValueError):
                    cards.card_at(position)

    def test_deck(self):
        deck = cards.build_deck_54()
        self.assertEqual(len(deck), 54)
        self.assertEqual(len({card.two_chars() for card in deck}), 53)
        self.assertEqual(sum(card.is_joker() for card in deck), 2)

    def test_image_url(self):
        self.assertEqual(
            cards.card_at(23).image_url(),
            "https://www.deckofcardsapi.com/static/img/0H.png",
        )

    def test_draw_uses_whole_deck(self):
        rng = FixedRandom(54)
        self.assertTrue(cards.draw_card(rng).is_joker())
        self.assertEqual(rng.calls, [(1, 54)])


class DrawCommandTest(unittest.TestCase):
    def test_draw_output(self):
        output = cards_cog._draw("alice", FixedRandom(40))
        self.assertEqual(output.text, "alice\n> Ace of Diamonds")
        self.assertEqual(output.card.two_chars(), "AD")


if __name__ == "__main__":
    unittest.main()
