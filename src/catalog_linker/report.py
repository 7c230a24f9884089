"""
Coverage metrics and spreadsheet export for a reconciliation run.

Works on the results DataFrame produced by BatchReconciler.reconcile().
"""

import io
from typing import Any, Dict, Optional, Union

import pandas as pd

from catalog_linker.config import MatchPolicy, Settings
from catalog_linker.matcher import REASON_JUNK_PREFIX
from catalog_linker.models import Decision

# Rejected rows scoring within this distance of the review threshold
NEAR_MISS_MARGIN = 0.05


def compute_coverage_metrics(df_results: pd.DataFrame, policy: Optional[MatchPolicy] = None) -> Dict[str, Any]:
    """
    Compute summary metrics from a completed reconciliation result DataFrame.

    Returns a dict with:
        total_rows: int, total listings processed
        auto_count / auto_rate: auto-approved listings
        review_count / review_rate: listings queued for review
        reject_count / reject_rate: rejected listings
        junk_count: rejected by the quality gate
        near_miss_count: rejected listings scoring just under the review threshold
        avg_auto_score: average score of auto-approved listings
        reason_breakdown: dict of reject reason -> count
    """
    policy = policy or Settings().policy()
    total = len(df_results)
    if total == 0:
        return {'total_rows': 0, 'auto_count': 0, 'auto_rate': 0.0,
                'review_count': 0, 'review_rate': 0.0,
                'reject_count': 0, 'reject_rate': 0.0,
                'junk_count': 0, 'near_miss_count': 0,
                'avg_auto_score': 0.0, 'reason_breakdown': {}}

    auto = df_results[df_results['decision'] == Decision.AUTO_APPROVE.value]
    review = df_results[df_results['decision'] == Decision.PENDING_REVIEW.value]
    reject = df_results[df_results['decision'] == Decision.REJECT.value]

    reasons = reject['reason'].fillna('').astype(str)
    junk = reject[reasons.str.startswith(REASON_JUNK_PREFIX)]

    lower = policy.pending_review_threshold - NEAR_MISS_MARGIN
    near_miss = reject[(reject['match_score'] >= lower) & (reject['match_score'] < policy.pending_review_threshold)]

    reason_breakdown = {}
    if len(reject) > 0:
        reason_breakdown = reasons.replace('', 'below_threshold').value_counts().to_dict()

    avg_score = round(float(auto['match_score'].mean()), 4) if len(auto) > 0 else 0.0

    return {
        'total_rows': total,
        'auto_count': len(auto),
        'auto_rate': round(len(auto) / total * 100, 1),
        'review_count': len(review),
        'review_rate': round(len(review) / total * 100, 1),
        'reject_count': len(reject),
        'reject_rate': round(len(reject) / total * 100, 1),
        'junk_count': len(junk),
        'near_miss_count': len(near_miss),
        'avg_auto_score': avg_score,
        'reason_breakdown': reason_breakdown,
    }


def export_results(
    df_results: pd.DataFrame,
    target: Union[str, io.BytesIO, None] = None,
    metrics: Optional[Dict[str, Any]] = None,
) -> Union[str, io.BytesIO]:
    """
    Write results to an Excel workbook, one sheet per decision plus a Summary.

    target may be a path or a binary buffer; with no target a new BytesIO is
    returned, rewound and ready to hand to a download or upload call.
    """
    if metrics is None:
        metrics = compute_coverage_metrics(df_results)
    output = target if target is not None else io.BytesIO()

    sheets = [
        ('Auto-Approved', Decision.AUTO_APPROVE),
        ('Pending Review', Decision.PENDING_REVIEW),
        ('Rejected', Decision.REJECT),
    ]
    with pd.ExcelWriter(output, engine='openpyxl') as writer:
        for sheet_name, decision in sheets:
            subset = df_results[df_results['decision'] == decision.value]
            subset.to_excel(writer, sheet_name=sheet_name, index=False)

        summary_rows = [
            {'metric': key, 'value': value}
            for key, value in metrics.items() if key != 'reason_breakdown'
        ]
        summary_rows.extend(
            {'metric': f'reason: {reason}', 'value': count}
            for reason, count in metrics.get('reason_breakdown', {}).items()
        )
        pd.DataFrame(summary_rows, columns=['metric', 'value']).to_excel(writer, sheet_name='Summary', index=False)

    if isinstance(output, io.BytesIO):
        output.seek(0)
    return output
