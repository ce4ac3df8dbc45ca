import unittest

from factories import make_context
from plancache.utils.context_hasher import (
    generate_all_hashes, generate_compound_key, generate_exact_hash, generate_semantic_hash, hash_user_id,
)


class TestContextHasher(unittest.TestCase):

    def test_exact_hash_is_deterministic(self):
        self.assertEqual(generate_exact_hash(make_context()), generate_exact_hash(make_context()))
        self.assertEqual(len(generate_exact_hash(make_context())), 64)

    def test_exact_hash_ignores_key_order(self):
        # Same data, nested sections built in a different order
        a = make_context(biometrics={"weight": 80, "age": 30})
        b = make_context(biometrics={"age": 30, "weight": 80})
        self.assertEqual(generate_exact_hash(a), generate_exact_hash(b))

    def test_exact_hash_changes_with_any_field(self):
        base = generate_exact_hash(make_context())
        self.assertNotEqual(base, generate_exact_hash(make_context(meta={"user_id": "user-2"})))
        self.assertNotEqual(base, generate_exact_hash(make_context(biometrics={"height": 181})))

    def test_semantic_hash_buckets_close_contexts(self):
        a = make_context(meta={"user_id": "a"}, biometrics={"weight": 81, "age": 27, "height": 175})
        b = make_context(meta={"user_id": "b"}, biometrics={"weight": 84, "age": 33, "height": 190})
        self.assertEqual(generate_semantic_hash(a), generate_semantic_hash(b))

    def test_semantic_hash_rounds_session_to_quarter_hour(self):
        a = make_context(training={"session_duration": 58})
        b = make_context(training={"session_duration": 62})
        self.assertEqual(generate_semantic_hash(a), generate_semantic_hash(b))

    def test_semantic_hash_separates_archetypes(self):
        a = make_context()
        self.assertNotEqual(generate_semantic_hash(a), generate_semantic_hash(make_context(biometrics={"weight": 86})))
        self.assertNotEqual(generate_semantic_hash(a), generate_semantic_hash(make_context(nutrition={"meals_per_day": 5})))

    def test_compound_key(self):
        self.assertEqual(generate_compound_key(make_context()), "bulk|intermediate|4|omnivore|9")
        self.assertEqual(
            generate_compound_key(make_context(objective={"target_timeline": 20})),
            "bulk|intermediate|4|omnivore|17"
        )

    def test_all_hashes(self):
        hashes = generate_all_hashes(make_context())
        self.assertEqual(hashes.exact_hash, generate_exact_hash(make_context()))
        self.assertEqual(hashes.compound_key, "bulk|intermediate|4|omnivore|9")

    def test_hash_user_id(self):
        hashed = hash_user_id("some-long-user-identifier")
        self.assertEqual(len(hashed), 16)
        self.assertNotIn("some-long", hashed)
        self.assertEqual(hashed, hash_user_id("some-long-user-identifier"))


if __name__ == '__main__':
    unittest.main()
