"""
Ordinary least squares of deaths per thousand on cases per thousand, by state.
"""

from __future__ import annotations

from dataclasses import dataclass

import pandas as pd
import statsmodels.formula.api as smf


@dataclass
class OLSResult:
    formula: str
    intercept: float
    slope: float
    r_squared: float
    slope_pvalue: float
    aic: float
    nobs: int
    predictions: pd.Series
    residuals: pd.Series

    def summary_dict(self) -> dict:
        return {
            "formula": self.formula,
            "intercept": self.intercept,
            "slope": self.slope,
            "r_squared": self.r_squared,
            "slope_pvalue": self.slope_pvalue,
            "aic": self.aic,
            "nobs": self.nobs,
        }


def fit_cases_deaths_ols(
    df: pd.DataFrame,
    response: str = "deaths_per_thou",
    predictor: str = "cases_per_thou",
) -> OLSResult:
    data = df[[response, predictor]].dropna()
    if len(data) < 3:
        raise ValueError(f"Need at least 3 rows to fit {response} ~ {predictor}, got {len(data)}")
    formula = f"{response} ~ {predictor}"
    result = smf.ols(formula=formula, data=data).fit()
    preds = result.predict(data)
    return OLSResult(
        formula=formula,
        intercept=float(result.params["Intercept"]),
        slope=float(result.params[predictor]),
        r_squared=float(result.rsquared),
        slope_pvalue=float(result.pvalues[predictor]),
        aic=float(result.aic),
        nobs=int(result.nobs),
        predictions=pd.Series(preds, index=data.index, name="predicted"),
        residuals=pd.Series(data[response] - preds, index=data.index, name="residual"),
    )


def with_predictions(df: pd.DataFrame, result: OLSResult) -> pd.DataFrame:
    out = df.copy()
    out["predicted"] = result.predictions
    out["residual"] = result.residuals
    return out


__all__ = ["OLSResult", "fit_cases_deaths_ols", "with_predictions"]
