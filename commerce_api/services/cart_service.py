"""Cart service: per-user carts and sale-stock reservations.

Handles:
- Cart read, reconciled against the catalogue (empty document when the
  user has no cart)
- Line add / update with reserve / release of the sale portion
- Line removal and cart deletion, releasing reserved sale stock first
- Reclaim of stale carts (archived into carts_abandoned)
- Totals (subtotal, sale savings, deposits, VAT)
"""
import copy
import logging
from datetime import datetime, timedelta
from typing import Optional, List, Dict, Any

from commerce_api import db
from commerce_api.models import Cart, AbandonedCart, EMPTY_TOTALS
from commerce_api.services.catalogue_service import CatalogueServiceError
from commerce_api.services.stock_service import StockServiceError
from commerce_api.utils.errors import ValidationError, UpstreamError
from commerce_api.utils.helpers import round_money, to_float

logger = logging.getLogger(__name__)


VAT_RATE = 0.15
STALE_AFTER = timedelta(hours=12)


def _now_iso() -> str:
    return datetime.utcnow().isoformat()


def item_unique_id(item: Dict[str, Any]) -> Optional[str]:
    """Product id of a line (current or legacy shape)."""
    return item.get('product_unique_id') or item.get('unique_id')


def item_variant_id(item: Dict[str, Any]):
    """Variant id of a line (current or legacy shape)."""
    variant = item.get('selected_variant') or {}
    if variant.get('variant_id') is not None:
        return variant['variant_id']
    return item.get('selected_variant_id')


def _same_id(a, b) -> bool:
    return a is not None and b is not None and str(a) == str(b)


def compute_totals(items: List[Dict[str, Any]]) -> Dict[str, float]:
    """Recompute cart totals from its lines.

    Sale units are priced at the sale price, regular units at the selling
    price; deposits apply to every unit when the variant price includes one.
    """
    totals = dict(EMPTY_TOTALS)

    for item in items:
        variant = item.get('selected_variant') or {}
        pricing = variant.get('pricing') or {}
        sale = variant.get('sale') or {}

        base = to_float(pricing.get('selling_price_excl'), 0)
        on_sale = sale.get('is_on_sale') is True
        sale_price = to_float(sale.get('sale_price_excl'), base) if on_sale else base

        sale_qty = to_float(item.get('sale_qty'), 0)
        regular_qty = to_float(item.get('regular_qty'), 0)
        qty = to_float(item.get('qty'), 0)

        totals['subtotal_excl'] += sale_qty * sale_price + regular_qty * base
        if on_sale:
            totals['sale_savings_excl'] += sale_qty * (base - sale_price)

        if pricing.get('deposit_included'):
            returnable = ((variant.get('returnable') or {}).get('pricing') or {})
            totals['deposit_total_excl'] += qty * to_float(returnable.get('full_returnable_price_excl'), 0)

    totals['final_excl'] = totals['subtotal_excl'] + totals['deposit_total_excl']
    totals['vat_total'] = totals['final_excl'] * VAT_RATE
    totals['final_incl'] = totals['final_excl'] + totals['vat_total']
    totals['subtotal_incl'] = totals['final_incl']

    return {key: round_money(value) for key, value in totals.items()}


class CartService:
    """Service for cart management.

    The stock and catalogue clients are injected; every release happens
    before the local write so a failed call leaves the stored cart untouched.
    """

    def __init__(self, stock_service, catalogue_service):
        self.stock = stock_service
        self.catalogue = catalogue_service

    # ==================== Stock ====================

    def _reserve(self, unique_id, variant_id, qty):
        try:
            self.stock.reserve(unique_id, variant_id, qty)
        except StockServiceError as e:
            raise UpstreamError(
                "Sale stock could not be reserved.",
                title="Stock Reservation Failed",
                extra={'error': str(e)}
            ) from e

    def _release(self, unique_id, variant_id, qty):
        try:
            self.stock.release(unique_id, variant_id, qty)
        except StockServiceError as e:
            raise UpstreamError(
                "Sale stock could not be released.",
                title="Stock Release Failed",
                extra={'error': str(e)}
            ) from e

    # ==================== Read ====================

    @staticmethod
    def _load(uid: str) -> Optional[Cart]:
        return db.session.get(Cart, uid)

    def _fresh_product(self, item: Dict[str, Any], global_warnings: List[Dict[str, Any]]):
        """Produit à jour, ou l'instantané de la ligne si le catalogue échoue"""
        unique_id = item_unique_id(item)
        try:
            return self.catalogue.get_product(unique_id)
        except CatalogueServiceError as e:
            logger.warning(f"Catalogue refresh failed for {unique_id}: {e}")
            global_warnings.append({
                'type': 'catalogue_fetch_failed',
                'product_unique_id': unique_id,
                'message': "Failed to refresh product data, using snapshot."
            })
            return item.get('product_snapshot')

    def _reconcile_item(self, item: Dict[str, Any], fresh: Dict[str, Any]):
        """
        Confronte une ligne au produit à jour.

        Returns:
            (ligne corrigée ou None si retirée, avertissements)
        """
        placement = fresh.get('placement') or {}
        if placement.get('isActive') is not True:
            return None, [{'type': 'product_inactive_removed', 'message': "Product deactivated."}]
        if placement.get('supplier_out_of_stock'):
            return None, [{'type': 'supplier_unavailable_removed',
                           'message': "Supplier cannot supply this product."}]

        variant_id = item_variant_id(item)
        variant = next(
            (v for v in (fresh.get('variants') or []) if _same_id(v.get('variant_id'), variant_id)),
            None
        )
        if not variant or (variant.get('placement') or {}).get('isActive') is not True:
            return None, [{'type': 'variant_removed', 'message': "Variant no longer active."}]

        warnings = []
        sale = variant.get('sale') or {}
        sale_available = max(int(to_float(sale.get('qty_available'), 0)), 0)
        on_sale = (sale.get('is_on_sale') is True
                   and to_float(sale.get('sale_price_excl'), 0) > 0
                   and sale_available > 0)

        sale_qty = int(to_float(item.get('sale_qty'), 0))
        regular_qty = int(to_float(item.get('regular_qty'), 0))
        kept_sale = sale_qty

        if on_sale and sale_qty > sale_available:
            kept_sale = sale_available
            warnings.append({'type': 'sale_quantity_reduced',
                             'message': "Sale qty reduced due to limited availability."})
        elif not on_sale and sale_qty > 0:
            kept_sale = 0
            warnings.append({'type': 'sale_no_longer_valid',
                             'message': "Sale has ended, moved to regular pricing."})

        # Les unités repassées au prix normal ne sont plus réservées
        if kept_sale < sale_qty:
            self._release(item_unique_id(item), variant_id, sale_qty - kept_sale)

        regular_qty += sale_qty - kept_sale
        reconciled = {
            **item,
            'product_snapshot': fresh,
            'grouping': fresh.get('grouping'),
            'placement': placement,
            'media': fresh.get('media'),
            'product': fresh.get('product'),
            'ratings': fresh.get('ratings') or {'average': None, 'count': 0, 'lastUpdated': None},
            'selected_variant': {**variant, 'sale_reservation_qty': kept_sale},
            'qty': kept_sale + regular_qty,
            'sale_qty': kept_sale,
            'regular_qty': regular_qty
        }
        return reconciled, warnings

    def get_cart(self, uid: str) -> Dict[str, Any]:
        """Stored cart reconciled against the catalogue.

        Lines whose product or variant is gone are dropped, and sale units
        beyond what the sale still allows move to regular pricing. A
        corrected cart is saved with recomputed totals. A user without a
        cart gets an empty, unsaved document.
        """
        if not uid:
            raise ValidationError("uid is required.", title="Invalid Request")

        global_warnings = []
        item_warnings = []
        corrected = False

        cart = self._load(uid)
        if cart is None:
            document = Cart.new_for(uid).to_dict()
        else:
            items = []
            for item in copy.deepcopy(cart.items or []):
                fresh = self._fresh_product(item, global_warnings)
                if not isinstance(fresh, dict):
                    items.append(item)
                    continue

                reconciled, warnings = self._reconcile_item(item, fresh)
                item_warnings.extend(
                    {**w, 'product_unique_id': item_unique_id(item)} for w in warnings
                )
                if warnings:
                    corrected = True
                if reconciled is not None:
                    if warnings:
                        reconciled['timestamps'] = {
                            **(item.get('timestamps') or {}),
                            'updatedAt': _now_iso()
                        }
                    items.append(reconciled)

            if corrected:
                document = self._save(cart, items, is_new=False)
                logger.info(f"Cart {uid} corrected: {len(item_warnings)} warning(s)")
            else:
                document = cart.to_dict()
                document['items'] = items
                document['totals'] = compute_totals(items)

        document['item_count'] = sum(int(to_float(i.get('qty'), 0)) for i in document['items'])
        document['cart_corrected'] = corrected

        return {
            'cart': document,
            'warnings': {'global': global_warnings, 'items': item_warnings}
        }

    # ==================== Update ====================

    def update_item(self, uid: str, product: Dict[str, Any], variant_id,
                    mode: str, qty) -> Dict[str, Any]:
        """Add, change or set the quantity of a cart line.

        Args:
            uid: User id (cart key)
            product: Catalogue product document (product, variants, ...)
            variant_id: Selected variant
            mode: 'set' (absolute) or 'change' (delta)
            qty: Quantity or delta

        Returns:
            {'cart': cart document}
        """
        product_unique_id = ((product or {}).get('product') or {}).get('unique_id') \
            if isinstance(product, dict) else None

        if not uid or not product_unique_id or variant_id is None or not mode or qty is None:
            raise ValidationError(
                "uid, product (with product.product.unique_id), variant_id, mode, qty are required.",
                title="Invalid Request"
            )

        if mode not in ('set', 'change'):
            raise ValidationError("mode must be 'set' or 'change'.", title="Invalid Mode")

        amount = to_float(qty)
        if amount is None:
            raise ValidationError("qty must be a number.", title="Invalid Quantity")
        amount = int(amount)

        variant = next(
            (v for v in (product.get('variants') or []) if _same_id(v.get('variant_id'), variant_id)),
            None
        )
        if not variant:
            raise ValidationError("Variant does not exist.", title="Variant Not Found")
        if (variant.get('placement') or {}).get('isActive') is not True:
            raise ValidationError("Variant is not active.", title="Variant Inactive")

        sale = variant.get('sale') or {}
        on_sale = sale.get('is_on_sale') is True
        sale_available = int(to_float(sale.get('qty_available'), 0)) if on_sale else 0

        cart = self._load(uid)
        is_new = cart is None
        if is_new:
            cart = Cart.new_for(uid)

        items = copy.deepcopy(cart.items or [])
        index = next(
            (i for i, it in enumerate(items)
             if item_unique_id(it) == product_unique_id and _same_id(item_variant_id(it), variant_id)),
            -1
        )
        existing = items[index] if index >= 0 else None
        current_qty = int(to_float((existing or {}).get('qty'), 0))
        current_sale_qty = int(to_float((existing or {}).get('sale_qty'), 0))

        final_qty = amount if mode == 'set' else current_qty + amount
        final_qty = max(final_qty, 0)

        # Quantité nulle: libération puis retrait de la ligne
        if final_qty == 0:
            if existing is None:
                return {'cart': cart.to_dict()}

            if current_sale_qty > 0:
                self._release(product_unique_id, variant_id, current_sale_qty)
            items.pop(index)
            return {'cart': self._save(cart, items, is_new)}

        if on_sale:
            required_sale = min(final_qty, sale_available + current_sale_qty)
            if required_sale > current_sale_qty:
                self._reserve(product_unique_id, variant_id, required_sale - current_sale_qty)
            elif required_sale < current_sale_qty:
                self._release(product_unique_id, variant_id, current_sale_qty - required_sale)
            new_sale_qty = required_sale
        else:
            # Plus en promotion: la réservation détenue est rendue
            if current_sale_qty > 0:
                self._release(product_unique_id, variant_id, current_sale_qty)
            new_sale_qty = 0

        now = _now_iso()
        item = {
            'product_unique_id': product_unique_id,
            'qty': final_qty,
            'sale_qty': new_sale_qty,
            'regular_qty': final_qty - new_sale_qty,
            'grouping': product.get('grouping'),
            'placement': product.get('placement'),
            'media': product.get('media'),
            'product_snapshot': product,
            'product': product.get('product'),
            'ratings': product.get('ratings') or {'average': None, 'count': 0, 'lastUpdated': None},
            'selected_variant': {**variant, 'sale_reservation_qty': new_sale_qty},
            'timestamps': {
                'createdAt': ((existing or {}).get('timestamps') or {}).get('createdAt') or now,
                'updatedAt': now
            }
        }

        if existing is not None:
            items[index] = item
        else:
            items.append(item)

        logger.info(f"Cart {uid}: {product_unique_id}/{variant_id} -> {final_qty} (sale {new_sale_qty})")
        return {'cart': self._save(cart, items, is_new)}

    @staticmethod
    def _save(cart: Cart, items: List[Dict[str, Any]], is_new: bool) -> Dict[str, Any]:
        cart.items = items
        cart.totals = compute_totals(items)
        cart.updated_at = datetime.utcnow()
        if is_new:
            db.session.add(cart)
        db.session.commit()
        return cart.to_dict()

    # ==================== Remove / delete ====================

    def remove_item(self, uid: str, unique_id: str, variant_id) -> Dict[str, Any]:
        """Remove one line, releasing its exact sale_qty first."""
        if not uid or not unique_id or variant_id is None:
            raise ValidationError("uid, unique_id, and variant_id are required.", title="Invalid Request")

        cart = self._load(uid)
        if cart is None:
            return {'cart': None, 'message': "Cart already empty."}

        items = copy.deepcopy(cart.items or [])
        index = next(
            (i for i, it in enumerate(items)
             if item_unique_id(it) == unique_id and _same_id(item_variant_id(it), variant_id)),
            -1
        )
        if index < 0:
            return {'cart': cart.to_dict(), 'message': "Item not found in cart."}

        sale_qty = int(to_float(items[index].get('sale_qty'), 0))
        if sale_qty > 0:
            self._release(unique_id, variant_id, sale_qty)

        items.pop(index)
        document = self._save(cart, items, is_new=False)
        logger.info(f"Cart {uid}: removed {unique_id}/{variant_id}, released {sale_qty}")

        return {'cart': document, 'message': "Item removed & sale stock restored."}

    def _release_all(self, items: List[Dict[str, Any]]) -> int:
        released = 0
        for item in items:
            sale_qty = int(to_float(item.get('sale_qty'), 0))
            if sale_qty > 0:
                self._release(item_unique_id(item), item_variant_id(item), sale_qty)
                released += sale_qty
        return released

    def delete_cart(self, uid: str) -> Dict[str, Any]:
        """Release every line's own sale_qty, then delete the cart."""
        if not uid:
            raise ValidationError("uid is required.", title="Invalid Request")

        cart = self._load(uid)
        if cart is None:
            return {'cart': None, 'message': "Cart already empty."}

        released = self._release_all(cart.items or [])
        db.session.delete(cart)
        db.session.commit()
        logger.info(f"Cart {uid} deleted, released {released} sale units")

        return {'cart': None, 'message': "Cart deleted & sale stock restored."}

    # ==================== Reclaim ====================

    def reclaim_stale(self, now: Optional[datetime] = None) -> Dict[str, Any]:
        """Reclaim carts created more than STALE_AFTER ago.

        Each cart is processed on its own: a failure is recorded and the
        scan continues with the next cart.
        """
        now = now or datetime.utcnow()
        reclaimed = []
        failed = []

        carts = Cart.query.filter(Cart.status == 'active').order_by(Cart.created_at).all()
        stale_ids = [c.user_id for c in carts if c.created_at and now - c.created_at >= STALE_AFTER]

        for user_id in stale_ids:
            try:
                cart = db.session.get(Cart, user_id)
                if cart is None:
                    continue

                self._release_all(cart.items or [])

                db.session.add(AbandonedCart(
                    user_id=user_id,
                    document=cart.to_dict(),
                    reclaimed_at=now
                ))
                db.session.delete(cart)
                db.session.commit()

                reclaimed.append(user_id)
                logger.info(f"Cart {user_id} reclaimed")
            except Exception as e:
                db.session.rollback()
                logger.error(f"Cart {user_id} reclaim failed: {e}")
                failed.append({'cartId': user_id, 'error': str(e.__cause__ or e)})

        return {
            'message': "Reclaim process completed.",
            'reclaimed': reclaimed,
            'failed': failed
        }
