"""Usage example.

    python -m bloomflt.examples
"""
from bloomflt.bloom_filter import BloomFilter


def main() -> None:
    # Expect up to 100 elements with an acceptable false-positive rate of 1%
    b = BloomFilter.new(100, 0.01)

    b.add_string("value1")
    if b.contains_string("value1"):
        print("The set now has 'value1'.")

    some_id = 123
    b.add_uint64(some_id)
    if b.contains_uint64(some_id):
        print(f"The set now has ID {some_id}.")


if __name__ == "__main__":
    main()
