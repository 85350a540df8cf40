"""
Synthetic Stroke Data Generator

Generates patient records in the layout of the public healthcare stroke CSV
(``id`` column, ``Residence_type`` header, ``"N/A"`` bmi strings) so the
pipeline can be exercised without the real dataset.
"""

import argparse
import logging
from pathlib import Path
from typing import Optional

import numpy as np
import pandas as pd
import yaml

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


class StrokeDataGenerator:
    """Generate synthetic stroke records with a configurable prevalence."""

    def __init__(self, seed: int = 42, bmi_missing_rate: float = 0.04):
        """
        Initialize the generator.

        Args:
            seed: Random seed for reproducibility
            bmi_missing_rate: Fraction of records whose bmi is written as "N/A"
        """
        self.seed = seed
        self.bmi_missing_rate = bmi_missing_rate
        self.rng = np.random.RandomState(seed)

    def generate_demographics(self, num_patients: int) -> pd.DataFrame:
        """Draw demographic and clinical predictors."""
        rng = self.rng
        age = np.round(rng.uniform(0.08, 82, size=num_patients), 2)
        adult = age >= 18

        gender = rng.choice(['Female', 'Male', 'Other'], size=num_patients, p=[0.586, 0.4138, 0.0002])

        hypertension = (rng.random_sample(num_patients) < np.clip(0.01 + (age - 30) * 0.004, 0.0, 0.4)).astype(int)
        heart_disease = (rng.random_sample(num_patients) < np.clip((age - 40) * 0.003, 0.0, 0.25)).astype(int)

        ever_married = np.where(adult & (rng.random_sample(num_patients) < np.clip(age / 45, 0, 0.9)), 'Yes', 'No')

        work_type = rng.choice(['Private', 'Self-employed', 'Govt_job', 'Never_worked'],
                               size=num_patients, p=[0.68, 0.19, 0.125, 0.005])
        work_type = np.where(age < 16, 'children', work_type)

        residence_type = rng.choice(['Urban', 'Rural'], size=num_patients, p=[0.51, 0.49])

        glucose = rng.lognormal(mean=np.log(95), sigma=0.25, size=num_patients)
        diabetic = rng.random_sample(num_patients) < np.clip((age - 30) * 0.003, 0.0, 0.2)
        glucose = np.where(diabetic, glucose + rng.normal(110, 30, size=num_patients), glucose)
        avg_glucose_level = np.round(np.clip(glucose, 55, 272), 2)

        bmi = np.where(adult, rng.normal(30, 6.5, size=num_patients), rng.normal(20, 4, size=num_patients))
        bmi = np.round(np.clip(bmi, 10.3, 97.6), 1)

        smoking_status = rng.choice(['never smoked', 'Unknown', 'formerly smoked', 'smokes'],
                                    size=num_patients, p=[0.37, 0.30, 0.17, 0.16])
        smoking_status = np.where(age < 12, 'Unknown', smoking_status)

        return pd.DataFrame({
            'id': rng.permutation(np.arange(1, 10 * num_patients + 1))[:num_patients],
            'gender': gender,
            'age': age,
            'hypertension': hypertension,
            'heart_disease': heart_disease,
            'ever_married': ever_married,
            'work_type': work_type,
            'Residence_type': residence_type,
            'avg_glucose_level': avg_glucose_level,
            'bmi': bmi,
            'smoking_status': smoking_status,
        })

    def generate_target_variable(self, data: pd.DataFrame, prevalence: float = 0.05) -> pd.Series:
        """Assign stroke labels from a logistic risk score, hitting the requested prevalence."""
        logger.info(f"Generating stroke label with {prevalence:.1%} prevalence")

        risk = (
            0.07 * data['age']
            + 0.6 * data['hypertension']
            + 0.5 * data['heart_disease']
            + 0.006 * (data['avg_glucose_level'] - 100).clip(lower=0)
            + 0.3 * (data['smoking_status'] == 'formerly smoked')
            + 0.2 * (data['smoking_status'] == 'smokes')
            + self.rng.normal(0, 0.6, size=len(data))
        ).to_numpy()

        n_positive = int(round(len(data) * prevalence))
        target = pd.Series(0, index=data.index)
        if n_positive <= 0:
            logger.warning("prevalence too small for dataset size, returning all zeros")
            return target

        # Sample positives proportionally to the logistic probability above the prevalence quantile
        threshold = float(np.percentile(risk, (1 - prevalence) * 100))
        probabilities = 1 / (1 + np.exp(-(risk - threshold)))
        chosen = self.rng.choice(len(data), size=n_positive, replace=False,
                                 p=probabilities / probabilities.sum())
        target.iloc[chosen] = 1
        logger.info(f"Assigned {int(target.sum())} positives")
        return target

    def generate_dataset(self, num_patients: int = 5000, prevalence: float = 0.05) -> pd.DataFrame:
        """Generate a complete raw dataset including the ``stroke`` label."""
        df = self.generate_demographics(num_patients)
        df['stroke'] = self.generate_target_variable(df, prevalence)

        missing = self.rng.random_sample(num_patients) < self.bmi_missing_rate
        df['bmi'] = df['bmi'].astype(object)
        df.loc[missing, 'bmi'] = 'N/A'

        logger.info(f"Generated {len(df)} records, {int(missing.sum())} with missing bmi")
        return df


def main(argv: Optional[list] = None):
    """Main function for command-line usage."""
    parser = argparse.ArgumentParser(description="Generate synthetic stroke data")
    parser.add_argument("--config", type=str, default=None,
                        help="Training config whose data_generation section supplies defaults")
    parser.add_argument("--num_patients", type=int, default=None,
                        help="Number of patients to generate (default 5000)")
    parser.add_argument("--prevalence", type=float, default=None,
                        help="Stroke prevalence (default 0.05)")
    parser.add_argument("--bmi_missing_rate", type=float, default=None,
                        help="Fraction of missing bmi values (default 0.04)")
    parser.add_argument("--output_dir", type=str, default="./data",
                        help="Output directory for generated data")
    parser.add_argument("--seed", type=int, default=42, help="Random seed")
    args = parser.parse_args(argv)

    gen_config = {}
    if args.config:
        with open(args.config, "r", encoding="utf-8") as f:
            gen_config = (yaml.safe_load(f) or {}).get("data_generation", {}) or {}

    def _setting(name, default):
        value = getattr(args, name)
        return value if value is not None else gen_config.get(name, default)

    output_dir = Path(args.output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    output_path = output_dir / "healthcare-dataset-stroke-data.csv"

    generator = StrokeDataGenerator(seed=args.seed, bmi_missing_rate=_setting("bmi_missing_rate", 0.04))
    df = generator.generate_dataset(num_patients=_setting("num_patients", 5000),
                                    prevalence=_setting("prevalence", 0.05))
    df.to_csv(output_path, index=False)
    logger.info(f"Data saved to {output_path}")

    summary = {
        'total_records': int(len(df)),
        'stroke_prevalence': float(df['stroke'].mean()),
        'missing_bmi': int((df['bmi'] == 'N/A').sum()),
        'features': list(df.columns),
        'seed': generator.seed,
    }
    summary_path = output_dir / "data_summary.yaml"
    with open(summary_path, 'w') as f:
        yaml.dump(summary, f, default_flow_style=False)
    logger.info(f"Summary saved to {summary_path}")


if __name__ == "__main__":
    main()
