"""Shared fixtures for the test suite."""

# Well-known development key (first account of the default hardhat/anvil mnemonic).
TEST_PRIVATE_KEY = "0xac0974bec39a17e36ba4a6b4d238ff944bacb478cbed5efcae784d7bf4f2ff80"
TEST_SIGNER_ADDRESS = "0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266"

PLAYER = "0x" + "ab" * 20
OTHER_PLAYER = "0x" + "cd" * 20


class StubRng:
    """Stands in for numpy.random.Generator with scripted draws."""

    def __init__(self, uniforms=(), integers=()):
        self.uniforms = list(uniforms)
        self.integer_values = list(integers)
        self.calls = []

    def random(self):
        self.calls.append("random")
        return self.uniforms.pop(0)

    def integers(self, low, high):
        self.calls.append(("integers", low, high))
        value = self.integer_values.pop(0)
        assert low <= value < high
        return value


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds
