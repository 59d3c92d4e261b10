import unittest
import numpy as np
import pandas as pd
from tests.conftest import make_nber_frames
from tidyposts.data_processing.nber_features import join_papers, single_category_papers
from tidyposts.data_processing.lasso_utils import (
    INTERCEPT_TERM,
    collect_metrics,
    conf_mat,
    downsample,
    initial_split,
    lasso_coefficients,
    last_fit,
    make_lasso_pipeline,
    penalty_grid,
    penalty_to_C,
    roc_curves,
    select_best,
    select_by_one_std_err,
    top_terms,
    tune_grid,
    vfold_cv,
)
from tidyposts.exceptions import DataValidationError


def _papers():
    return single_category_papers(join_papers(*make_nber_frames()))


class TestResampling(unittest.TestCase):
    def setUp(self):
        self.df = _papers()

    def test_initial_split_is_stratified(self):
        train, test = initial_split(self.df, prop=0.75, random_state=1)
        self.assertEqual(len(train) + len(test), len(self.df))
        self.assertTrue(set(train["paper"]).isdisjoint(set(test["paper"])))
        shares = train["program_category"].value_counts(normalize=True)
        expected = self.df["program_category"].value_counts(normalize=True)
        pd.testing.assert_series_equal(shares.sort_index(), expected.sort_index(), atol=0.02, check_names=False)

    def test_initial_split_rejects_bad_prop(self):
        with self.assertRaises(ValueError):
            initial_split(self.df, prop=1.0)

    def test_vfold_cv(self):
        folds = vfold_cv(self.df, v=5, random_state=1)
        self.assertEqual([f.fold_id for f in folds], ["Fold1", "Fold2", "Fold3", "Fold4", "Fold5"])
        assessed = np.concatenate([f.assessment for f in folds])
        self.assertEqual(sorted(assessed), list(range(len(self.df))))
        for f in folds:
            self.assertTrue(set(f.analysis).isdisjoint(set(f.assessment)))
        self.assertEqual(vfold_cv(self.df, v=10)[0].fold_id, "Fold01")

    def test_vfold_cv_too_many_folds(self):
        with self.assertRaises(DataValidationError):
            vfold_cv(self.df.head(2), v=3)

    def test_downsample(self):
        down = downsample(self.df, random_state=1)
        counts = down["program_category"].value_counts()
        self.assertEqual(set(counts), {45})
        self.assertTrue(down.index.isin(self.df.index).all())


class TestModel(unittest.TestCase):
    def test_penalty_grid(self):
        grid = penalty_grid((-5, 0), 20)
        self.assertEqual(len(grid), 20)
        self.assertAlmostEqual(grid[0], 1e-5)
        self.assertAlmostEqual(grid[-1], 1.0)
        np.testing.assert_allclose(np.diff(np.log10(grid)), 5 / 19)
        with self.assertRaises(ValueError):
            penalty_grid((0, -5), 3)

    def test_penalty_to_C(self):
        self.assertAlmostEqual(penalty_to_C(0.01, 200), 0.5)
        with self.assertRaises(ValueError):
            penalty_to_C(0, 10)

    def test_pipeline_steps(self):
        pipe = make_lasso_pipeline(1e-3, 100, max_tokens=50)
        self.assertEqual(list(pipe.named_steps), ["tfidf", "lasso"])
        self.assertEqual(pipe.named_steps["tfidf"].max_features, 50)
        self.assertEqual(pipe.named_steps["lasso"].C, 10.0)


class TestTuning(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        df = _papers()
        cls.train, cls.test = initial_split(df, random_state=123)
        cls.folds = vfold_cv(cls.train, v=3, random_state=123)
        cls.grid = [1e-4, 1e-2, 1.0]
        cls.tuning = tune_grid(cls.train, cls.grid, cls.folds, max_tokens=50, n_jobs=1)
        cls.metrics = collect_metrics(cls.tuning)

    def test_tuning_table(self):
        self.assertEqual(list(self.tuning.columns), ["penalty", "fold", ".metric", "value"])
        self.assertEqual(len(self.tuning), 3 * 3 * 2)
        self.assertTrue(self.tuning["value"].between(0, 1).all())

    def test_collect_metrics(self):
        self.assertEqual(list(self.metrics.columns), ["penalty", ".metric", "mean", "n", "std_err"])
        self.assertEqual(len(self.metrics), 6)
        self.assertTrue((self.metrics["n"] == 3).all())

    def test_heavy_penalty_is_uninformative(self):
        auc = self.metrics[self.metrics[".metric"] == "roc_auc"].set_index("penalty")["mean"]
        self.assertAlmostEqual(auc[1.0], 0.5, places=3)
        self.assertGreater(auc[1e-4], 0.9)

    def test_select_best(self):
        best = select_best(self.metrics, "roc_auc")
        self.assertIn(best["penalty"], [1e-4, 1e-2])
        self.assertGreater(best["mean"], 0.9)
        with self.assertRaises(ValueError):
            select_best(self.metrics, "rmse")

    def test_select_by_one_std_err(self):
        metrics = pd.DataFrame({
            "penalty": [0.001, 0.01, 0.1, 1.0],
            ".metric": "roc_auc",
            "mean": [0.90, 0.91, 0.895, 0.5],
            "n": 10,
            "std_err": [0.01, 0.02, 0.01, 0.0],
        })
        self.assertEqual(select_best(metrics)["penalty"], 0.01)
        self.assertEqual(select_by_one_std_err(metrics)["penalty"], 0.1)

    def test_parallel_matches_serial(self):
        parallel = tune_grid(self.train, self.grid[:2], self.folds[:2], max_tokens=50, n_jobs=2)
        serial = self.tuning[self.tuning["penalty"].isin(self.grid[:2]) & self.tuning["fold"].isin(["Fold1", "Fold2"])]
        np.testing.assert_allclose(parallel["value"].to_numpy(), serial["value"].to_numpy())


class TestLastFit(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        df = _papers()
        train, test = initial_split(df, random_state=123)
        cls.test = test
        cls.result = last_fit(train, test, penalty=1e-3, max_tokens=50)

    def test_predictions(self):
        preds = self.result.predictions
        self.assertEqual(len(preds), len(self.test))
        self.assertEqual(
            list(preds.columns),
            ["paper", "truth", ".pred_class", ".pred_Finance", ".pred_Macro/International", ".pred_Micro"],
        )
        probs = preds[[c for c in preds.columns if c.startswith(".pred_") and c != ".pred_class"]]
        np.testing.assert_allclose(probs.sum(axis=1), 1.0)

    def test_metrics(self):
        m = dict(zip(self.result.metrics[".metric"], self.result.metrics[".estimate"]))
        self.assertGreater(m["accuracy"], 0.8)
        self.assertGreater(m["roc_auc"], 0.9)

    def test_conf_mat(self):
        cm = conf_mat(self.result.predictions)
        self.assertEqual(list(cm.columns), ["truth", "prediction", "n"])
        self.assertEqual(len(cm), 9)
        self.assertEqual(cm["n"].sum(), len(self.test))
        diag = cm[cm["truth"] == cm["prediction"]]["n"].sum()
        self.assertGreater(diag / len(self.test), 0.8)

    def test_roc_curves(self):
        curves = roc_curves(self.result.predictions)
        self.assertEqual(list(curves.columns), [".level", ".threshold", "specificity", "sensitivity"])
        self.assertEqual(set(curves[".level"]), {"Finance", "Macro/International", "Micro"})
        self.assertTrue(curves["sensitivity"].between(0, 1).all())

    def test_coefficients(self):
        coefs = lasso_coefficients(self.result.pipeline)
        self.assertEqual(list(coefs.columns), ["class", "term", "estimate"])
        self.assertEqual((coefs["term"] == INTERCEPT_TERM).sum(), 3)
        terms = top_terms(coefs, n=3)
        self.assertNotIn(INTERCEPT_TERM, set(terms["term"]))
        self.assertTrue((terms.groupby("class").size() <= 3).all())
        finance = set(terms.loc[(terms["class"] == "Finance") & (terms["sign"] == "POS"), "term"])
        self.assertTrue(finance <= {"stock", "returns", "bond", "asset", "pricing", "banks", "credit", "portfolio"})

    def test_binary_coefficients(self):
        df = pd.DataFrame({
            "paper": [f"w{i}" for i in range(40)],
            "title": ["bond stock"] * 20 + ["labor wages"] * 20,
            "program_category": ["Finance"] * 20 + ["Micro"] * 20,
        })
        result = last_fit(df, df, penalty=1e-3, max_tokens=10)
        coefs = lasso_coefficients(result.pipeline)
        self.assertEqual(set(coefs["class"]), {"Micro"})
        self.assertEqual(list(result.predictions.columns)[-2:], [".pred_Finance", ".pred_Micro"])


if __name__ == '__main__':
    unittest.main()
