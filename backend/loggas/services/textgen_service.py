# Overview: Advisory text generation (insights, customer projections, route hints) via the Gemini REST API.

"""
Every public helper here is advisory: it reads stored data, asks the text
API for a narrative and returns either that text or a fixed fallback
string. None of them write to any entity or raise ExternalServiceError.
"""

from __future__ import annotations

import json
import logging

import requests
from flask import current_app

from ..extensions import db
from ..models import Product, Sale, LedgerTransaction
from .customer_service import get_customer

logger = logging.getLogger(__name__)

FINANCIAL_FALLBACK = "Não foi possível gerar insights no momento."
PROJECTION_FALLBACK = "Sem projeções no momento."
ROUTE_FALLBACK = "Não foi possível otimizar a rota."


class ExternalServiceError(Exception):
    """Text generation API unavailable, misconfigured or returned nothing usable."""


def generate_text(prompt: str) -> str:
    """
    Call the generateContent endpoint and return the first candidate's text.

    Raises:
        ExternalServiceError: missing API key, network failure, timeout,
            non-2xx status, malformed body or empty candidate list
    """
    config = current_app.config
    api_key = config.get("GEMINI_API_KEY")
    if not api_key:
        raise ExternalServiceError("GEMINI_API_KEY is not configured")

    url = f"{config['GEMINI_API_URL'].rstrip('/')}/{config['GEMINI_MODEL']}:generateContent"
    payload = {"contents": [{"parts": [{"text": prompt}]}]}

    try:
        response = requests.post(
            url,
            params={"key": api_key},
            json=payload,
            timeout=config.get("TEXTGEN_TIMEOUT_SECONDS", 15),
        )
    except requests.RequestException as exc:
        logger.warning("Text generation request failed: %s", exc)
        raise ExternalServiceError("Text generation service unreachable") from exc

    if not response.ok:
        logger.warning("Text generation failed. Status: %s", response.status_code)
        raise ExternalServiceError(f"Text generation returned HTTP {response.status_code}")

    try:
        data = response.json()
    except ValueError as exc:
        raise ExternalServiceError("Text generation returned invalid JSON") from exc

    candidates = data.get("candidates") or []
    parts = []
    if candidates:
        parts = (candidates[0].get("content") or {}).get("parts") or []
    text = "".join(part.get("text", "") for part in parts).strip()
    if not text:
        raise ExternalServiceError("Text generation returned no candidates")
    return text


def _advise(prompt: str, fallback: str) -> str:
    try:
        return generate_text(prompt)
    except ExternalServiceError as exc:
        logger.info("Using fallback text: %s", exc)
        return fallback


def _money(cents: int) -> str:
    return f"{cents / 100:.2f}"


def financial_insights(tenant_id: str) -> str:
    products = db.session.query(Product).filter(Product.tenant_id == tenant_id).order_by(Product.name).all()
    transactions = (
        db.session.query(LedgerTransaction)
        .filter(LedgerTransaction.tenant_id == tenant_id)
        .order_by(LedgerTransaction.occurred_at.desc())
        .limit(5)
        .all()
    )
    sales = (
        db.session.query(Sale)
        .filter(Sale.tenant_id == tenant_id)
        .order_by(Sale.created_at.desc())
        .limit(5)
        .all()
    )

    product_rows = [
        {"name": p.name, "stock": p.stock, "min": p.min_stock, "sell": _money(p.sell_price_cents)}
        for p in products
    ]
    tx_rows = [
        {"description": t.description, "type": t.type, "amount": _money(t.amount_cents), "category": t.category}
        for t in transactions
    ]
    sale_rows = [
        {"total": _money(s.total_cents), "payment": s.payment_method, "origin": s.origin, "status": s.status}
        for s in sales
    ]

    prompt = (
        "Analise os seguintes dados de uma distribuidora de gás e água:\n"
        f"Produtos: {json.dumps(product_rows, ensure_ascii=False)}\n"
        f"Transações Recentes: {json.dumps(tx_rows, ensure_ascii=False)}\n"
        f"Vendas Recentes: {json.dumps(sale_rows, ensure_ascii=False)}\n\n"
        "Por favor, forneça:\n"
        "1. Uma análise rápida da saúde financeira (lucratividade aproximada).\n"
        "2. Identifique os 3 produtos mais críticos em termos de estoque.\n"
        "3. Dê uma sugestão estratégica para aumentar as vendas nesta semana.\n\n"
        "Responda em português de forma concisa e profissional."
    )
    return _advise(prompt, FINANCIAL_FALLBACK)


def customer_projection(tenant_id: str, customer_id: str) -> str:
    """Next-purchase projection for one customer. Unknown ids raise NotFoundError."""
    customer = get_customer(tenant_id, customer_id)
    history = (
        db.session.query(Sale)
        .filter(Sale.tenant_id == tenant_id, Sale.customer_id == customer_id)
        .order_by(Sale.created_at.desc())
        .limit(10)
        .all()
    )
    history_rows = [
        {
            "date": s.created_at.date().isoformat(),
            "total": _money(s.total_cents),
            "items": [item.product_name for item in s.items],
        }
        for s in history
    ]

    prompt = (
        "Analise o histórico de compras deste cliente:\n"
        f"Cliente: {customer.name or customer.id}\n"
        f"Total de Compras: {customer.purchase_count}\n"
        f"Valor Total Gasto: R$ {_money(customer.total_spent_cents)}\n"
        f"Intervalo Médio (dias): {customer.average_interval_days if customer.average_interval_days is not None else 'n/d'}\n"
        f"Histórico Recente: {json.dumps(history_rows, ensure_ascii=False)}\n\n"
        "Com base na frequência de compra e itens (gás dura em média 30-45 dias, água 7-15 dias), faça:\n"
        "1. Uma projeção de data para a próxima compra.\n"
        "2. Sugira qual produto oferecer no próximo contato.\n"
        "3. Uma mensagem curta e personalizada de lembrete via WhatsApp.\n\n"
        "Seja breve e direto ao ponto."
    )
    return _advise(prompt, PROJECTION_FALLBACK)


def delivery_route_suggestion(tenant_id: str, sale_ids) -> str:
    sale_ids = list(sale_ids or [])
    if not sale_ids:
        return ROUTE_FALLBACK

    sales = (
        db.session.query(Sale)
        .filter(Sale.tenant_id == tenant_id, Sale.id.in_(sale_ids))
        .order_by(Sale.created_at.asc())
        .all()
    )
    stops = [
        {
            "id": s.id,
            "address": s.customer_address,
            "items": [item.product_name for item in s.items],
        }
        for s in sales
    ]
    if not stops:
        return ROUTE_FALLBACK

    prompt = (
        "Você é um especialista em logística. Otimize a sequência de entrega para os seguintes pedidos:\n"
        f"{json.dumps(stops, ensure_ascii=False)}\n\n"
        "Considere que o ponto de partida é a distribuidora central.\n"
        "1. Organize os pedidos em uma sequência lógica de entrega para minimizar o tempo.\n"
        "2. Explique brevemente o porquê dessa ordem (ex: agrupamento por bairro).\n\n"
        "Responda em português de forma clara."
    )
    return _advise(prompt, ROUTE_FALLBACK)
