# Cards.
# Drawing single cards from a 54-card deck (52 cards and two jokers).
from collections import namedtuple
import random

DECK_SIZE = 54
JOKER_NUMBER = 0
JOKER_TWO_CHARS = "XX"
CARD_IMAGE_URL = "https://www.deckofcardsapi.com/static/img/{}.png"


# `n` is the value from 1 (ace) to 13 (king), `s` indexes SUITS.
# Jokers have value JOKER_NUMBER.
class Card(namedtuple("CardId", ["n", "s"])):
    NUMBERS = ["Ace", "2", "3", "4", "5", "6", "7",
               "8", "9", "10", "Jack", "Queen", "King"]
    NUMBER_CHARS = ["A", "2", "3", "4", "5", "6", "7",
                    "8", "9", "0", "J", "Q", "K"]
    SUITS = ["Clubs", "Hearts", "Spades", "Diamonds"]
    SUIT_CHARS = ["C", "H", "S", "D"]

    def is_joker(self):
        return self.n == JOKER_NUMBER

    def is_valid(self):
        if self.is_joker():
            return True
        return 1 <= self.n <= len(Card.NUMBERS) and 0 <= self.s < len(Card.SUITS)

    def number(self):
        return Card.NUMBERS[self.n - 1]

    def suit(self):
        return Card.SUITS[self.s]

    # Short code used by the card image service, like `0H` for the ten of hearts.
    def two_chars(self):
        if self.is_joker():
            return JOKER_TWO_CHARS
        return Card.NUMBER_CHARS[self.n - 1] + Card.SUIT_CHARS[self.s]

    def image_url(self):
        return CARD_IMAGE_URL.format(self.two_chars())

    def __str__(self):
        if self.is_joker():
            return "Joker"
        return f"{self.number()} of {self.suit()}"

    @staticmethod
    def joker():
        return Card(JOKER_NUMBER, 0)


# Card for a position in the deck, from 1 to DECK_SIZE.
# Suits come in blocks of 13; the last two positions are jokers.
def card_at(position: int) -> Card:
    if position < 1 or position > DECK_SIZE:
        raise ValueError(f"No card at position {position} in a {DECK_SIZE}-card deck.")
    if position > 52:
        return Card.joker()
    return Card((position - 1) % 13 + 1, (position - 1) // 13)


def build_deck_54():
    return [card_at(position) for position in range(1, DECK_SIZE + 1)]


# Draw one card, with replacement.
def draw_card(rng=random) -> Card:
    return card_at(rng.randint(1, DECK_SIZE))


if __name__ == "__main__":
    for card in build_deck_54():
        print(f"{card.two_chars()} {card}")
    print("========")
    print(draw_card())
